"""Greedy slot allocator that turns a backlog into an agenda."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Mapping, Tuple
from uuid import UUID, uuid4

from agenda.planning.clock import Clock, utc_now
from agenda.planning.errors import InvalidArgumentError
from agenda.planning.models import (
    DEFAULT_ENERGY_CURVE,
    AgendaBlock,
    EnergyLevel,
    PlanningRequest,
    PlanningResult,
    Project,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT_DURATION = timedelta(minutes=30)
# Absorbs float noise such as 0.5000000000000001 when counting slots.
_SLOT_EPSILON = 1e-9


def backlog_sort_key(project: Project) -> Tuple[int, int, datetime]:
    """Priority descending, then valence descending, then earliest due date."""
    return (-project.priority, -project.valence, project.due_date)


def sort_backlog(backlog: Iterable[Project]) -> List[Project]:
    return sorted(backlog, key=backlog_sort_key)


def slot_hours(slot_duration: timedelta) -> float:
    return slot_duration.total_seconds() / 3600


def slots_needed(estimated_hours: float, multiplier: float, slot_duration: timedelta = DEFAULT_SLOT_DURATION) -> int:
    """Whole slots covering ``estimated_hours * multiplier``, at least one for any positive demand."""
    adjusted = estimated_hours * multiplier
    if adjusted <= 0:
        return 0
    ratio = adjusted / slot_hours(slot_duration)
    return max(1, math.ceil(ratio - _SLOT_EPSILON))


def horizon_slots(horizon_hours: float, slot_duration: timedelta = DEFAULT_SLOT_DURATION) -> int:
    """Number of whole slots that fit inside the horizon."""
    if horizon_hours <= 0:
        return 0
    return math.floor(horizon_hours / slot_hours(slot_duration) + _SLOT_EPSILON)


class DeterministicScheduler:
    """Allocate fixed-size slots to projects in backlog order until the horizon is spent."""

    name = "deterministic"

    def __init__(
        self,
        *,
        slot_duration: timedelta = DEFAULT_SLOT_DURATION,
        energy_curve: Mapping[EnergyLevel, float] | None = None,
        clock: Clock = utc_now,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        if slot_duration <= timedelta(0):
            raise InvalidArgumentError("Slot duration must be positive")
        curve = dict(energy_curve or DEFAULT_ENERGY_CURVE)
        missing = [level.value for level in EnergyLevel if level not in curve]
        if missing:
            raise InvalidArgumentError(f"Energy curve is missing tiers: {', '.join(missing)}")
        if any(multiplier <= 0 for multiplier in curve.values()):
            raise InvalidArgumentError("Energy multipliers must be positive")

        self.slot_duration = slot_duration
        self.energy_curve = curve
        self.clock = clock
        self.id_factory = id_factory

    def multiplier_for(self, energy: EnergyLevel | str) -> float:
        return self.energy_curve[EnergyLevel.parse(energy)]

    def plan(self, request: PlanningRequest) -> PlanningResult:
        per_slot = slot_hours(self.slot_duration)
        capacity = horizon_slots(request.horizon_hours, self.slot_duration)
        multiplier = self.multiplier_for(request.energy)

        blocks: List[AgendaBlock] = []
        cursor = self.clock()
        for project in sort_backlog(request.backlog):
            if len(blocks) >= capacity:
                break
            needed = slots_needed(project.estimated_hours, multiplier, self.slot_duration)
            for _ in range(min(needed, capacity - len(blocks))):
                end = cursor + self.slot_duration
                blocks.append(
                    AgendaBlock(
                        id=self.id_factory(),
                        user_id=request.user_id,
                        project_id=project.id,
                        start=cursor,
                        end=end,
                    )
                )
                cursor = end

        total_hours = len(blocks) * per_slot
        logger.debug(
            "Planned %d blocks (%.2fh of %.2fh) for %d projects at energy=%s",
            len(blocks),
            total_hours,
            request.horizon_hours,
            len(request.backlog),
            request.energy.value,
        )
        return PlanningResult(blocks=blocks, total_hours=total_hours, strategy=self.name)
