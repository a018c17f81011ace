import logging
from typing import List, Optional

from ..client.api import RemoteClient
from ..client.errors import ApiError, Err, ErrorKind, Ok, Result
from ..index.store import CalendarStore
from ..schemas.events import (
    CalendarImported,
    GoalCascadeDeleted,
    GoalCreated,
    GoalInfoUpdated,
    StepCreated,
    StepDeleted,
    StepsRescheduled,
    StepUpdated,
)
from ..schemas.goal import BulkStepDraft, Goal, Step, StepDraft

logger = logging.getLogger(__name__)


class SyncService:
    """Runs each user action against the remote API and feeds the store.

    Calls inside a flow are awaited one after another. The store is touched
    only once the last call of the flow succeeded; an ``Err`` is returned
    unchanged and leaves the store as it was.
    """

    def __init__(self, client: RemoteClient, store: CalendarStore) -> None:
        self.client = client
        self.store = store

    async def bootstrap(self, email: Optional[str] = None, password: Optional[str] = None) -> Result[List[Goal]]:
        if email is not None and password is not None:
            login = await self.client.login(email, password)
            if isinstance(login, Err):
                return login
            if not login.value.access_token:
                return Err(ApiError(ErrorKind.INVALID_RESPONSE, login.value.message))
        goals = await self.client.get_goals_with_steps()
        if isinstance(goals, Ok):
            self.store.load_goals(goals.value)
        return goals

    def sign_out(self) -> None:
        self.client.clear_token()
        self.store.reset()

    async def create_goal(self, title: str, description: str, steps: List[StepDraft]) -> Result[List[Goal]]:
        created = await self.client.create_goal(title, description, steps)
        if isinstance(created, Err):
            return created
        # the create route answers with a message only, so reload everything
        return await self.bootstrap()

    async def generate_goal(self, prompt: str) -> Result[Goal]:
        generated = await self.client.generate_goal(prompt)
        if isinstance(generated, Err):
            return generated
        goal = await self.client.get_goal(generated.value)
        if isinstance(goal, Ok):
            self.store.apply(GoalCreated(goal=goal.value))
        return goal

    async def add_step(self, goal_id: int, title: str, description: Optional[str] = None, date: Optional[str] = None) -> Result[Step]:
        added = await self.client.add_step(goal_id, title, description, date)
        if isinstance(added, Err):
            return added
        detail = await self.client.get_goal_step(goal_id, added.value)
        if isinstance(detail, Err):
            return detail
        goal, step = detail.value
        self.store.apply(StepCreated(goal=goal, step=step))
        return Ok(step)

    async def update_step(
        self,
        step_id: int,
        goal_id: Optional[int] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Result[Step]:
        if goal_id is None:
            known = self.store.find_step(step_id)
            if known is None:
                return Err(ApiError(ErrorKind.UNKNOWN_STEP, f"Unknown step {step_id}"))
            goal_id = known.goal_id
        updated = await self.client.update_step(step_id, title, description, status, date)
        if isinstance(updated, Err):
            return updated
        detail = await self.client.get_goal_step(goal_id, step_id)
        if isinstance(detail, Err):
            return detail
        goal, step = detail.value
        self.store.apply(StepUpdated(goal=goal, step=step))
        return Ok(step)

    async def toggle_step(self, step_id: int) -> Result[Step]:
        known = self.store.find_step(step_id)
        if known is None:
            return Err(ApiError(ErrorKind.UNKNOWN_STEP, f"Unknown step {step_id}"))
        status = "planned" if known.status == "done" else "done"
        return await self.update_step(step_id, known.goal_id, status=status)

    async def delete_step(self, step_id: int) -> Result[str]:
        known = self.store.find_step(step_id)
        deleted = await self.client.delete_step(step_id)
        if isinstance(deleted, Err):
            return deleted
        if known is None:
            self.store.apply(StepDeleted(step_id=step_id))
            return deleted
        info = await self.client.get_goal_info(known.goal_id)
        if isinstance(info, Ok):
            self.store.apply(GoalInfoUpdated(goal=info.value))
        else:
            # the step is gone server-side either way
            logger.warning("Goal %s refresh failed after deleting step %s: %s", known.goal_id, step_id, info.error)
            self.store.apply(StepDeleted(step_id=step_id, goal_id=known.goal_id))
        return deleted

    async def update_goal(
        self,
        goal_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Result[Goal]:
        updated = await self.client.update_goal(goal_id, title, description, color)
        if isinstance(updated, Err):
            return updated
        goal = await self.client.get_goal(goal_id)
        if isinstance(goal, Ok):
            self.store.apply(GoalInfoUpdated(goal=goal.value))
        return goal

    async def delete_goal(self, goal_id: int) -> Result[str]:
        deleted = await self.client.delete_goal(goal_id)
        if isinstance(deleted, Ok):
            self.store.apply(GoalCascadeDeleted(goal_id=goal_id))
        return deleted

    async def reschedule(self, problem: str) -> Result[List[Step]]:
        rescheduled = await self.client.reschedule(problem)
        if isinstance(rescheduled, Err):
            return rescheduled
        message, step_ids = rescheduled.value
        if not step_ids:
            logger.info("Reschedule changed nothing: %s", message)
            return Ok([])
        steps = await self.client.get_steps_bulk(step_ids)
        if isinstance(steps, Ok):
            self.store.apply(StepsRescheduled(steps=steps.value))
        return steps

    async def import_steps(self, goal_id: int, steps: List[BulkStepDraft]) -> Result[List[Step]]:
        created = await self.client.add_steps_bulk(goal_id, steps)
        if isinstance(created, Err):
            return created
        if not created.value:
            goal = await self.client.get_goal(goal_id)
            if isinstance(goal, Err):
                return goal
            self.store.apply(GoalInfoUpdated(goal=goal.value))
            return Ok(list(goal.value.steps))
        fetched = await self.client.get_steps_bulk(created.value)
        if isinstance(fetched, Ok):
            self.store.apply(CalendarImported(steps=fetched.value))
        return fetched
