from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

StepStatus = Literal["planned", "done"]


class Step(BaseModel):
    id: int
    goal_id: int
    goal_name: str = ""
    color: Optional[str] = ""
    title: str = ""
    description: Optional[str] = ""
    status: StepStatus = "planned"
    date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class Goal(BaseModel):
    id: int
    title: str
    description: Optional[str] = ""
    color: Optional[str] = ""
    progress: float = 0.0
    created_at: str = ""
    updated_at: str = ""
    steps: List[Step] = Field(default_factory=list)

    @field_validator("steps", mode="before")
    @classmethod
    def _null_steps(cls, value):
        return value if value is not None else []


class StepDraft(BaseModel):
    title: str
    description: Optional[str] = None
    date: Optional[str] = None


class BulkStepDraft(BaseModel):
    description: str
    date: str


class SimpleMessage(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    access_token: Optional[str] = None


class UpdatedTask(BaseModel):
    task_id: int


class RescheduleResponse(BaseModel):
    message: str
    updated_tasks: List[UpdatedTask] = Field(default_factory=list)


class StepsBulkResponse(BaseModel):
    steps: List[Step]


class DaySummary(BaseModel):
    day: str
    total: int
    done: int
    colors: List[str] = Field(default_factory=list)


class Selection(BaseModel):
    day: Optional[str] = None
    steps: List[Step]
    done: int
    total: int
