from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from ..client.errors import Err, ErrorKind, Result
from ..dependencies import get_sync_service
from ..schemas.goal import BulkStepDraft, StepDraft
from ..sync.service import SyncService

router = APIRouter(prefix="/sync", tags=["sync"])

_STATUS_BY_KIND = {
    ErrorKind.SESSION_EXPIRED: 401,
    ErrorKind.SERVER: 502,
    ErrorKind.TRANSPORT: 503,
    ErrorKind.INVALID_RESPONSE: 502,
    ErrorKind.UNKNOWN_STEP: 404,
}


def _unwrap(result: Result[Any]) -> Any:
    if isinstance(result, Err):
        raise HTTPException(
            status_code=_STATUS_BY_KIND[result.error.kind],
            detail={"kind": result.error.kind.value, "message": result.error.message},
        )
    return result.value


def _require(body: Dict[str, Any], key: str) -> Any:
    value = body.get(key)
    if value is None:
        raise HTTPException(status_code=400, detail=f"{key} required")
    return value


def _require_id(body: Dict[str, Any], key: str) -> int:
    value = _require(body, key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be an integer") from None


def _optional_id(body: Dict[str, Any], key: str) -> Optional[int]:
    if body.get(key) is None:
        return None
    return _require_id(body, key)


@router.post("")
async def sync(body: Dict[str, Any], service: SyncService = Depends(get_sync_service)) -> Any:
    op = body.get("operation") or "bootstrap"
    try:
        if op == "bootstrap":
            return _unwrap(await service.bootstrap(body.get("email"), body.get("password")))
        if op == "sign_out":
            service.sign_out()
            return {"status": "signed_out"}
        if op == "create_goal":
            steps = [StepDraft(**step) for step in body.get("steps") or []]
            return _unwrap(await service.create_goal(_require(body, "title"), body.get("description") or "", steps))
        if op == "generate_goal":
            return _unwrap(await service.generate_goal(_require(body, "prompt")))
        if op == "add_step":
            return _unwrap(
                await service.add_step(
                    _require_id(body, "goalId"),
                    _require(body, "title"),
                    body.get("description"),
                    body.get("date"),
                )
            )
        if op == "update_step":
            return _unwrap(
                await service.update_step(
                    _require_id(body, "stepId"),
                    _optional_id(body, "goalId"),
                    title=body.get("title"),
                    description=body.get("description"),
                    status=body.get("status"),
                    date=body.get("date"),
                )
            )
        if op == "toggle_step":
            return _unwrap(await service.toggle_step(_require_id(body, "stepId")))
        if op == "delete_step":
            return {"message": _unwrap(await service.delete_step(_require_id(body, "stepId")))}
        if op == "update_goal":
            return _unwrap(
                await service.update_goal(
                    _require_id(body, "goalId"),
                    title=body.get("title"),
                    description=body.get("description"),
                    color=body.get("color"),
                )
            )
        if op == "delete_goal":
            return {"message": _unwrap(await service.delete_goal(_require_id(body, "goalId")))}
        if op == "reschedule":
            return _unwrap(await service.reschedule(_require(body, "problem")))
        if op == "import_steps":
            steps = [BulkStepDraft(**step) for step in _require(body, "steps")]
            return _unwrap(await service.import_steps(_require_id(body, "goalId"), steps))
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    raise HTTPException(status_code=400, detail="Unsupported operation")
