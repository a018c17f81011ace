from .client.api import RemoteClient
from .config import settings
from .index.store import CalendarStore
from .sync.service import SyncService

_store = CalendarStore()
_client = RemoteClient(token=settings.API_TOKEN)
_service = SyncService(_client, _store)


def get_store() -> CalendarStore:
    return _store


def get_sync_service() -> SyncService:
    return _service
