import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..schemas.goal import DaySummary, Step
from .dates import DayLike, parse_day, to_day

logger = logging.getLogger(__name__)


def sort_key(step: Step) -> Tuple[bool, int]:
    # planned before done, then ascending id
    return (step.status != "planned", step.id)


class StepIndex:
    """Calendar day -> ordered steps, derived from the known set of steps.

    A step id lives in at most one bucket, at most once. Buckets are kept
    sorted with ``sort_key`` and deleted once they become empty.
    """

    def __init__(self) -> None:
        self._buckets: Dict[date, List[Step]] = {}

    def __len__(self) -> int:
        return sum(len(steps) for steps in self._buckets.values())

    def __contains__(self, step_id: object) -> bool:
        return isinstance(step_id, int) and self.find_step(step_id) is not None

    def rebuild_from_steps(self, steps: Iterable[Step]) -> None:
        self._buckets = {}
        latest: Dict[int, Step] = {step.id: step for step in steps}
        for step in latest.values():
            day = parse_day(step.date)
            if day is None:
                logger.debug("step %s has unparseable date %r; left out of the calendar", step.id, step.date)
                continue
            self._buckets.setdefault(day, []).append(step)
        for bucket in self._buckets.values():
            bucket.sort(key=sort_key)

    def insert_step(self, step: Step) -> Optional[date]:
        self._discard(step.id)
        day = parse_day(step.date)
        if day is None:
            logger.debug("step %s has unparseable date %r; not inserted", step.id, step.date)
            return None
        bucket = self._buckets.setdefault(day, [])
        bucket.append(step)
        bucket.sort(key=sort_key)
        return day

    def remove_step(self, step_id: int, day: Optional[DayLike] = None) -> Optional[Step]:
        if day is not None:
            key = to_day(day)
            removed = self._remove_from(key, step_id) if key is not None else None
            if removed is not None:
                return removed
        for key in list(self._buckets):
            removed = self._remove_from(key, step_id)
            if removed is not None:
                return removed
        logger.debug("remove_step: step %s not in index", step_id)
        return None

    def remove_steps_by_goal(self, goal_id: int) -> int:
        removed = 0
        for key in list(self._buckets):
            bucket = self._buckets[key]
            kept = [step for step in bucket if step.goal_id != goal_id]
            removed += len(bucket) - len(kept)
            if kept:
                self._buckets[key] = kept
            else:
                del self._buckets[key]
        return removed

    def replace_step(self, old_id: int, new_step: Step) -> Optional[date]:
        if self.remove_step(old_id) is None:
            logger.debug("replace_step: step %s was not indexed; inserting", old_id)
        return self.insert_step(new_step)

    def bulk_replace(self, steps: Iterable[Step]) -> Set[date]:
        incoming = list(steps)
        ids = {step.id for step in incoming}
        touched: Set[date] = set()
        for key in list(self._buckets):
            bucket = self._buckets[key]
            kept = [step for step in bucket if step.id not in ids]
            if len(kept) == len(bucket):
                continue
            touched.add(key)
            if kept:
                self._buckets[key] = kept
            else:
                del self._buckets[key]
        # last occurrence of a repeated id wins
        latest: Dict[int, Step] = {step.id: step for step in incoming}
        for step in latest.values():
            day = parse_day(step.date)
            if day is None:
                logger.debug("bulk_replace: step %s has unparseable date %r", step.id, step.date)
                continue
            self._buckets.setdefault(day, []).append(step)
            touched.add(day)
        for key in touched:
            if key in self._buckets:
                self._buckets[key].sort(key=sort_key)
        return touched

    def steps_for_day(self, day: DayLike) -> List[Step]:
        key = to_day(day)
        if key is None:
            return []
        return list(self._buckets.get(key, []))

    def days(self) -> List[date]:
        return sorted(self._buckets)

    def find_step(self, step_id: int) -> Optional[Tuple[date, Step]]:
        for key, bucket in self._buckets.items():
            for step in bucket:
                if step.id == step_id:
                    return key, step
        return None

    def day_colors(self, day: DayLike) -> List[str]:
        return sorted({step.color for step in self.steps_for_day(day) if step.color})

    def day_summary(self, day: DayLike) -> DaySummary:
        key = to_day(day)
        steps = self.steps_for_day(day)
        return DaySummary(
            day=key.isoformat() if key else str(day),
            total=len(steps),
            done=len([step for step in steps if step.status == "done"]),
            colors=self.day_colors(day),
        )

    def _remove_from(self, key: date, step_id: int) -> Optional[Step]:
        bucket = self._buckets.get(key)
        if not bucket:
            return None
        for position, step in enumerate(bucket):
            if step.id == step_id:
                del bucket[position]
                if not bucket:
                    del self._buckets[key]
                return step
        return None

    def _discard(self, step_id: int) -> None:
        for key in list(self._buckets):
            if self._remove_from(key, step_id) is not None:
                return
