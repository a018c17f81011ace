import logging
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

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
from ..schemas.goal import Goal, Selection, Step
from .dates import DayLike, to_day
from .step_index import StepIndex

logger = logging.getLogger(__name__)


class CalendarStore:
    """Canonical goals plus the derived step index and selected-day view.

    Mutations arrive as events through ``apply``; the selected-day slice is
    re-derived from the index after each one.
    """

    def __init__(self) -> None:
        self.goals: Dict[int, Goal] = {}
        self.index = StepIndex()
        self.selected_day: Optional[date] = None
        self.current_steps: List[Step] = []
        self._handlers: Dict[type, Callable] = {
            GoalCreated: self._on_goal_created,
            StepCreated: self._on_step_created,
            StepUpdated: self._on_step_updated,
            StepDeleted: self._on_step_deleted,
            GoalCascadeDeleted: self._on_goal_cascade_deleted,
            StepsRescheduled: self._on_steps_rescheduled,
            GoalInfoUpdated: self._on_goal_info_updated,
            CalendarImported: self._on_calendar_imported,
        }

    def load_goals(self, goals: Iterable[Goal]) -> None:
        self.goals = {goal.id: goal for goal in goals}
        self.index.rebuild_from_steps(step for goal in self.goals.values() for step in goal.steps)
        logger.info("Loaded %d goals, %d steps on the calendar", len(self.goals), len(self.index))
        self._refresh_selection()

    def apply(self, event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported store event: {type(event).__name__}")
        handler(event)
        logger.info("Applied %s", event.kind)
        self._refresh_selection()

    def reset(self) -> None:
        self.goals = {}
        self.index = StepIndex()
        self.selected_day = None
        self.current_steps = []

    def select_day(self, day: DayLike) -> Optional[date]:
        key = to_day(day)
        if key is None:
            raise ValueError(f"Invalid day: {day!r}")
        self.selected_day = key
        self._refresh_selection()
        return key

    def clear_selection(self) -> None:
        self.selected_day = None
        self._refresh_selection()

    def selection(self) -> Selection:
        steps = list(self.current_steps)
        return Selection(
            day=self.selected_day.isoformat() if self.selected_day else None,
            steps=steps,
            done=len([step for step in steps if step.status == "done"]),
            total=len(steps),
        )

    def goal(self, goal_id: int) -> Optional[Goal]:
        return self.goals.get(goal_id)

    def list_goals(self) -> List[Goal]:
        return list(self.goals.values())

    def find_step(self, step_id: int) -> Optional[Step]:
        located = self.index.find_step(step_id)
        if located:
            return located[1]
        for goal in self.goals.values():
            for step in goal.steps:
                if step.id == step_id:
                    return step
        return None

    def _refresh_selection(self) -> None:
        if self.selected_day is None:
            self.current_steps = []
        else:
            self.current_steps = self.index.steps_for_day(self.selected_day)

    def _merge_goal_info(self, goal: Goal) -> None:
        # Detail responses embed only the affected step; keep the known list.
        existing = self.goals.get(goal.id)
        if existing is None:
            self.goals[goal.id] = goal
            return
        self.goals[goal.id] = goal.model_copy(update={"steps": existing.steps})

    def _put_step_in_goal(self, step: Step) -> None:
        goal = self.goals.get(step.goal_id)
        if goal is None:
            logger.debug("step %s references unknown goal %s", step.id, step.goal_id)
            return
        steps = [step if existing.id == step.id else existing for existing in goal.steps]
        if not any(existing.id == step.id for existing in goal.steps):
            steps.append(step)
        self.goals[goal.id] = goal.model_copy(update={"steps": steps})

    def _drop_step_from_goals(self, step_id: int, goal_id: Optional[int]) -> None:
        candidates = [self.goals[goal_id]] if goal_id in self.goals else list(self.goals.values())
        for goal in candidates:
            steps = [step for step in goal.steps if step.id != step_id]
            if len(steps) != len(goal.steps):
                self.goals[goal.id] = goal.model_copy(update={"steps": steps})
                return

    def _on_goal_created(self, event: GoalCreated) -> None:
        self.goals[event.goal.id] = event.goal
        self.index.bulk_replace(event.goal.steps)

    def _on_step_created(self, event: StepCreated) -> None:
        self._merge_goal_info(event.goal)
        self._put_step_in_goal(event.step)
        self.index.insert_step(event.step)

    def _on_step_updated(self, event: StepUpdated) -> None:
        self._merge_goal_info(event.goal)
        self._put_step_in_goal(event.step)
        self.index.replace_step(event.step.id, event.step)

    def _on_step_deleted(self, event: StepDeleted) -> None:
        self._drop_step_from_goals(event.step_id, event.goal_id)
        self.index.remove_step(event.step_id, event.day)

    def _on_goal_cascade_deleted(self, event: GoalCascadeDeleted) -> None:
        self.goals.pop(event.goal_id, None)
        removed = self.index.remove_steps_by_goal(event.goal_id)
        logger.debug("goal %s deleted with %d calendar steps", event.goal_id, removed)

    def _on_steps_rescheduled(self, event: StepsRescheduled) -> None:
        for step in event.steps:
            self._put_step_in_goal(step)
        self.index.bulk_replace(event.steps)

    def _on_goal_info_updated(self, event: GoalInfoUpdated) -> None:
        self.goals[event.goal.id] = event.goal
        self.index.remove_steps_by_goal(event.goal.id)
        self.index.bulk_replace(event.goal.steps)

    def _on_calendar_imported(self, event: CalendarImported) -> None:
        for step in event.steps:
            self._put_step_in_goal(step)
        self.index.bulk_replace(event.steps)
