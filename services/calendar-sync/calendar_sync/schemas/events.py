from datetime import date
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .goal import Goal, Step


class GoalCreated(BaseModel):
    kind: Literal["goal_created"] = "goal_created"
    goal: Goal


class StepCreated(BaseModel):
    kind: Literal["step_created"] = "step_created"
    goal: Goal
    step: Step


class StepUpdated(BaseModel):
    kind: Literal["step_updated"] = "step_updated"
    goal: Goal
    step: Step


class StepDeleted(BaseModel):
    kind: Literal["step_deleted"] = "step_deleted"
    step_id: int
    goal_id: Optional[int] = None
    # Narrows the index scan to one bucket when the caller knows the day.
    day: Optional[date] = None


class GoalCascadeDeleted(BaseModel):
    kind: Literal["goal_cascade_deleted"] = "goal_cascade_deleted"
    goal_id: int


class StepsRescheduled(BaseModel):
    kind: Literal["steps_rescheduled"] = "steps_rescheduled"
    steps: List[Step]


class GoalInfoUpdated(BaseModel):
    kind: Literal["goal_info_updated"] = "goal_info_updated"
    goal: Goal


class CalendarImported(BaseModel):
    kind: Literal["calendar_imported"] = "calendar_imported"
    steps: List[Step]


StoreEvent = Annotated[
    Union[
        GoalCreated,
        StepCreated,
        StepUpdated,
        StepDeleted,
        GoalCascadeDeleted,
        StepsRescheduled,
        GoalInfoUpdated,
        CalendarImported,
    ],
    Field(discriminator="kind"),
]
