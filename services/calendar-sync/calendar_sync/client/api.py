import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas.goal import (
    BulkStepDraft,
    Goal,
    LoginResponse,
    RescheduleResponse,
    SimpleMessage,
    Step,
    StepDraft,
    StepsBulkResponse,
)
from .errors import ApiError, Err, ErrorKind, Ok, Result, classify_failure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _server_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


def _created_ids(items: List[Any]) -> List[int]:
    ids: List[int] = []
    for item in items:
        if isinstance(item, int):
            ids.append(item)
        elif isinstance(item, dict):
            value = item.get("id", item.get("step_id"))
            if isinstance(value, int):
                ids.append(value)
    return ids


class RemoteClient:
    """Async client for the WhatIamToDo REST API.

    Every call resolves to ``Ok(value)`` or ``Err(ApiError)``; transport,
    HTTP and decoding failures are reported, never raised.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def clear_token(self) -> None:
        self.token = None

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None, auth: bool = True) -> Result[Any]:
        headers: Dict[str, str] = {}
        if auth:
            if not self.token:
                return Err(ApiError(ErrorKind.SESSION_EXPIRED, "Not signed in"))
            headers["Authorization"] = f"Bearer {self.token}"
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return Err(ApiError(ErrorKind.TRANSPORT, str(exc) or exc.__class__.__name__))

        if not 200 <= resp.status_code < 300:
            message = _server_message(resp)
            if auth:
                error = classify_failure(resp.status_code, message)
            else:
                # a 401 from a sign-in route means bad credentials, not an expired session
                error = ApiError(ErrorKind.SERVER, message or f"Status {resp.status_code}", resp.status_code)
            logger.warning("%s %s -> %s: %s", method, path, resp.status_code, error.message)
            return Err(error)
        try:
            return Ok(resp.json())
        except ValueError:
            return Err(ApiError(ErrorKind.INVALID_RESPONSE, "Invalid server response", resp.status_code))

    @staticmethod
    def _decode(result: Result[Any], parse: Callable[[Any], T]) -> Result[T]:
        if isinstance(result, Err):
            return result
        try:
            return Ok(parse(result.value))
        except (ValidationError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Could not decode server response: %s", exc)
            return Err(ApiError(ErrorKind.INVALID_RESPONSE, "No data from server"))

    async def _message(self, method: str, path: str, body: Optional[Dict[str, Any]] = None, auth: bool = True) -> Result[str]:
        result = await self._request(method, path, body, auth=auth)
        return self._decode(result, lambda data: SimpleMessage.model_validate(data).message)

    # auth

    async def register(self, email: str, password: str, name: str) -> Result[str]:
        return await self._message("POST", "/auth/register", {"email": email, "password": password, "name": name}, auth=False)

    async def login(self, email: str, password: str) -> Result[LoginResponse]:
        result = await self._request("POST", "/auth/login", {"email": email, "password": password}, auth=False)
        decoded = self._decode(result, LoginResponse.model_validate)
        if isinstance(decoded, Ok) and decoded.value.access_token:
            self.set_token(decoded.value.access_token)
        return decoded

    async def recover_password(self, email: str) -> Result[str]:
        return await self._message("POST", "/auth/recover-password", {"email": email}, auth=False)

    async def reset_password(self, token: str, new_password: str) -> Result[str]:
        return await self._message("POST", "/auth/reset-password", {"token": token, "new_password": new_password}, auth=False)

    async def check_protected(self) -> Result[str]:
        return await self._message("GET", "/auth/protected")

    # goals

    async def create_goal(self, title: str, description: str, steps: List[StepDraft]) -> Result[str]:
        body = {
            "title": title,
            "description": description,
            "steps": [
                {"title": step.title, "description": step.description or "", "date": step.date or ""}
                for step in steps
            ],
        }
        return await self._message("POST", "/api/goals", body)

    async def get_goals(self) -> Result[List[Goal]]:
        result = await self._request("GET", "/api/goals")
        return self._decode(result, lambda data: [Goal.model_validate(item) for item in data])

    async def get_goals_with_steps(self) -> Result[List[Goal]]:
        result = await self._request("GET", "/api/goals/with-steps")
        return self._decode(result, lambda data: [Goal.model_validate(item) for item in data])

    async def get_goal(self, goal_id: int) -> Result[Goal]:
        result = await self._request("GET", f"/api/goals/{goal_id}")
        return self._decode(result, Goal.model_validate)

    async def get_goal_info(self, goal_id: int) -> Result[Goal]:
        result = await self._request("GET", f"/api/goals/{goal_id}/info")
        return self._decode(result, Goal.model_validate)

    async def get_goal_step(self, goal_id: int, step_id: int) -> Result[Tuple[Goal, Step]]:
        result = await self._request("GET", f"/api/goals/{goal_id}/steps/{step_id}")

        def parse(data: Any) -> Tuple[Goal, Step]:
            goal = Goal.model_validate(data)
            if not goal.steps:
                raise ValueError("goal detail carries no step")
            return goal, goal.steps[0]

        return self._decode(result, parse)

    async def update_goal(
        self,
        goal_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Result[str]:
        body: Dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if description is not None:
            body["description"] = description
        if color is not None:
            body["color"] = color
        return await self._message("PATCH", f"/api/goals/{goal_id}", body)

    async def delete_goal(self, goal_id: int) -> Result[str]:
        return await self._message("DELETE", f"/api/goals/{goal_id}")

    # steps

    async def add_step(self, goal_id: int, title: str, description: Optional[str] = None, date: Optional[str] = None) -> Result[int]:
        body: Dict[str, Any] = {"title": title}
        if description is not None:
            body["description"] = description
        if date is not None:
            body["date"] = date
        result = await self._request("POST", f"/api/goals/{goal_id}/steps", body)
        return self._decode(result, lambda data: int(data["step_id"]))

    async def add_steps_bulk(self, goal_id: int, steps: List[BulkStepDraft]) -> Result[List[int]]:
        body = {"steps": [{"description": step.description, "date": step.date} for step in steps]}
        result = await self._request("POST", f"/api/goals/{goal_id}/steps/bulk", body)
        return self._decode(result, lambda data: _created_ids(data.get("created_steps") or []))

    async def update_step(
        self,
        step_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Result[str]:
        body: Dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if description is not None:
            body["description"] = description
        if status is not None:
            body["status"] = status
        if date is not None:
            body["date"] = date
        return await self._message("PATCH", f"/api/steps/{step_id}", body)

    async def delete_step(self, step_id: int) -> Result[str]:
        return await self._message("DELETE", f"/api/steps/{step_id}")

    async def get_steps_bulk(self, step_ids: List[int]) -> Result[List[Step]]:
        result = await self._request("POST", "/api/steps/bulk", {"step_ids": list(step_ids)})
        return self._decode(result, lambda data: StepsBulkResponse.model_validate(data).steps)

    # ai

    async def reschedule(self, problem: str) -> Result[Tuple[str, List[int]]]:
        result = await self._request("POST", "/api/ai/reschedule", {"problem": problem})

        def parse(data: Any) -> Tuple[str, List[int]]:
            parsed = RescheduleResponse.model_validate(data)
            return parsed.message, [task.task_id for task in parsed.updated_tasks]

        return self._decode(result, parse)

    async def generate_goal(self, user_prompt: str) -> Result[int]:
        result = await self._request("POST", "/api/ai/generate-goal", {"user_prompt": user_prompt})
        return self._decode(result, lambda data: int(data["goal_id"]))
