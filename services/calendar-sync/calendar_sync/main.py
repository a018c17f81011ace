from fastapi import FastAPI

from .config import settings
from .logging_config import configure_logging
from .routers.calendar import router as calendar_router
from .routers.sync import router as sync_router

configure_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(calendar_router)
app.include_router(sync_router)
