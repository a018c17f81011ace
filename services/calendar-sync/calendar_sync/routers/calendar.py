from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import TypeAdapter, ValidationError

from ..dependencies import get_store
from ..index.dates import to_day
from ..index.store import CalendarStore
from ..schemas.events import StoreEvent
from ..schemas.goal import DaySummary, Goal, Selection, Step

router = APIRouter(prefix="/calendar", tags=["calendar"])

_event_adapter = TypeAdapter(StoreEvent)
_goals_adapter = TypeAdapter(List[Goal])


@router.get("/days")
async def list_days(
    year: Optional[int] = None,
    month: Optional[int] = None,
    store: CalendarStore = Depends(get_store),
) -> List[DaySummary]:
    days = store.index.days()
    if year is not None:
        days = [day for day in days if day.year == year]
    if month is not None:
        days = [day for day in days if day.month == month]
    return [store.index.day_summary(day) for day in days]


@router.get("/days/{day}")
async def steps_for_day(day: str, store: CalendarStore = Depends(get_store)) -> List[Step]:
    if to_day(day) is None:
        raise HTTPException(status_code=400, detail="Invalid day")
    return store.index.steps_for_day(day)


@router.get("/selection")
async def get_selection(store: CalendarStore = Depends(get_store)) -> Selection:
    return store.selection()


@router.post("/select")
async def select_day(body: Dict[str, Any], store: CalendarStore = Depends(get_store)) -> Selection:
    day = body.get("day")
    if not isinstance(day, str):
        raise HTTPException(status_code=400, detail="day required")
    try:
        store.select_day(day)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return store.selection()


@router.delete("/selection")
async def clear_selection(store: CalendarStore = Depends(get_store)) -> Selection:
    store.clear_selection()
    return store.selection()


@router.post("/events")
async def apply_event(body: Dict[str, Any], store: CalendarStore = Depends(get_store)) -> Selection:
    try:
        event = _event_adapter.validate_python(body)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    store.apply(event)
    return store.selection()


@router.post("/rebuild")
async def rebuild(body: Dict[str, Any], store: CalendarStore = Depends(get_store)) -> Dict[str, int]:
    try:
        goals = _goals_adapter.validate_python(body.get("goals") or [])
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    store.load_goals(goals)
    return {"goals": len(store.goals), "steps": len(store.index)}


@router.get("/goals")
async def list_goals(store: CalendarStore = Depends(get_store)) -> List[Goal]:
    return store.list_goals()
