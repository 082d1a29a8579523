"""Records consumed and produced by the agenda scheduler."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Sequence, Tuple
from uuid import UUID

from agenda.planning.errors import InvalidArgumentError

MIN_SCORE = 1
MAX_SCORE = 5
DEFAULT_MAX_HORIZON_HOURS = 168.0


class EnergyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: "EnergyLevel | str") -> "EnergyLevel":
        """Accept enum members, their values, or the short ``med`` alias."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            label = value.strip().lower()
            if label == "med":
                return cls.MEDIUM
            for member in cls:
                if member.value == label:
                    return member
        raise InvalidArgumentError(f"Unknown energy level: {value!r}")


# Multiplier applied to estimated hours for each energy tier.
DEFAULT_ENERGY_CURVE: Mapping[EnergyLevel, float] = {
    EnergyLevel.LOW: 0.7,
    EnergyLevel.MEDIUM: 1.0,
    EnergyLevel.HIGH: 1.3,
}


def clamp_score(value: int) -> int:
    """Clamp a priority/valence score into the 1-5 range."""
    return max(MIN_SCORE, min(MAX_SCORE, int(value)))


@dataclass(frozen=True)
class Project:
    """A backlog item as seen by the scheduler."""

    id: UUID
    user_id: UUID
    title: str
    category: str
    valence: int
    estimated_hours: float
    priority: int
    due_date: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "valence", clamp_score(self.valence))
        object.__setattr__(self, "priority", clamp_score(self.priority))
        hours = float(self.estimated_hours)
        if not math.isfinite(hours) or hours <= 0:
            raise InvalidArgumentError(
                f"Project {self.id} must have positive estimated hours (got {self.estimated_hours!r})"
            )
        object.__setattr__(self, "estimated_hours", hours)
        if self.due_date.tzinfo is None:
            object.__setattr__(self, "due_date", self.due_date.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class AgendaBlock:
    id: UUID
    user_id: UUID
    project_id: UUID
    start: datetime
    end: datetime


@dataclass(frozen=True)
class PlanningRequest:
    """One planning call: a backlog snapshot plus horizon and energy tier.

    A horizon of zero is accepted and yields an empty agenda; negative or
    oversized horizons are rejected.
    """

    backlog: Tuple[Project, ...]
    horizon_hours: float
    energy: EnergyLevel
    user_id: UUID
    max_horizon_hours: float = DEFAULT_MAX_HORIZON_HOURS

    def __post_init__(self) -> None:
        object.__setattr__(self, "backlog", tuple(self.backlog))
        object.__setattr__(self, "energy", EnergyLevel.parse(self.energy))
        horizon = float(self.horizon_hours)
        if not math.isfinite(horizon) or horizon < 0:
            raise InvalidArgumentError(f"Horizon must be a non-negative number of hours (got {self.horizon_hours!r})")
        if horizon > self.max_horizon_hours:
            raise InvalidArgumentError(
                f"Horizon of {horizon:g}h exceeds the maximum of {self.max_horizon_hours:g}h"
            )
        object.__setattr__(self, "horizon_hours", horizon)

    @classmethod
    def build(
        cls,
        backlog: Sequence[Project],
        horizon_hours: float,
        energy: EnergyLevel | str,
        user_id: UUID,
        **kwargs: Any,
    ) -> "PlanningRequest":
        return cls(backlog=tuple(backlog), horizon_hours=horizon_hours, energy=energy, user_id=user_id, **kwargs)


@dataclass
class PlanningResult:
    blocks: List[AgendaBlock] = field(default_factory=list)
    total_hours: float = 0.0
    strategy: str = "deterministic"
