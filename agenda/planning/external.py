"""Pluggable planning strategies with a deterministic safety net."""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Protocol

from agenda.observability.metrics import log_metric
from agenda.observability.tracing import trace
from agenda.planning.deterministic import DEFAULT_SLOT_DURATION, DeterministicScheduler, slot_hours
from agenda.planning.errors import PlannerStrategyError
from agenda.planning.models import PlanningRequest, PlanningResult

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_TIMEOUT_SECONDS = 10.0

# One pool for every ExternalScheduler. Interpreter exit joins its workers,
# so a hung strategy delays shutdown by at most the OpenAI client timeout.
STRATEGY_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="planner-strategy")


class Scheduler(Protocol):
    name: str

    def plan(self, request: PlanningRequest) -> PlanningResult:
        ...


class PlanningStrategy(Protocol):
    """Alternative planner (e.g. network-backed) implementing the scheduler contract."""

    name: str

    def plan(self, request: PlanningRequest) -> PlanningResult:
        ...


def validate_result(
    request: PlanningRequest,
    result: PlanningResult,
    slot_duration: timedelta = DEFAULT_SLOT_DURATION,
    not_before: datetime | None = None,
) -> PlanningResult:
    """
    Raise PlannerStrategyError unless ``result`` honours the scheduler contract.

    Blocks must be back-to-back slots, the first starting no earlier than ``not_before``.
    """
    if not isinstance(result, PlanningResult):
        raise PlannerStrategyError(f"Strategy returned {type(result).__name__}, expected PlanningResult")

    known_projects = {project.id for project in request.backlog}
    previous_end = None
    for index, block in enumerate(result.blocks):
        if block.project_id not in known_projects:
            raise PlannerStrategyError(f"Block {index} references unknown project {block.project_id}")
        if block.user_id != request.user_id:
            raise PlannerStrategyError(f"Block {index} belongs to another user")
        if block.end - block.start != slot_duration:
            raise PlannerStrategyError(f"Block {index} does not span exactly one slot")
        if previous_end is None:
            if not_before is not None and block.start < not_before:
                raise PlannerStrategyError(f"Block {index} starts before the planning start {not_before.isoformat()}")
        elif block.start != previous_end:
            raise PlannerStrategyError(f"Block {index} does not start where the previous block ends")
        previous_end = block.end

    expected_hours = len(result.blocks) * slot_hours(slot_duration)
    if not math.isclose(result.total_hours, expected_hours, abs_tol=1e-6):
        raise PlannerStrategyError(
            f"Reported {result.total_hours}h but blocks cover {expected_hours}h"
        )
    if result.total_hours > request.horizon_hours + 1e-6:
        raise PlannerStrategyError(
            f"Result uses {result.total_hours}h which exceeds the {request.horizon_hours}h horizon"
        )
    return result


class ExternalScheduler:
    """Run an external strategy under a timeout, falling back once to the deterministic planner."""

    def __init__(
        self,
        strategy: PlanningStrategy,
        fallback: DeterministicScheduler | None = None,
        *,
        timeout_seconds: float = DEFAULT_STRATEGY_TIMEOUT_SECONDS,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.strategy = strategy
        self.fallback = fallback or DeterministicScheduler()
        self.timeout_seconds = timeout_seconds
        self.executor = executor or STRATEGY_EXECUTOR
        self.name = getattr(strategy, "name", "external")

    def plan(self, request: PlanningRequest) -> PlanningResult:
        metadata = {
            "strategy": self.name,
            "horizon_hours": request.horizon_hours,
            "energy": request.energy.value,
            "backlog_size": len(request.backlog),
        }
        with trace("planner.external", metadata=metadata, user_id=str(request.user_id)):
            planning_start = self.fallback.clock()
            try:
                result = self._run_strategy(request)
                validate_result(request, result, self.fallback.slot_duration, not_before=planning_start)
            except FutureTimeoutError:
                return self._fall_back(request, reason="timeout")
            except Exception as exc:
                logger.warning("Planning strategy %s failed: %s", self.name, exc)
                return self._fall_back(request, reason=type(exc).__name__)

        log_metric("planner.external.success", 1, metadata={"strategy": self.name})
        return result

    def _run_strategy(self, request: PlanningRequest) -> PlanningResult:
        future = self.executor.submit(self.strategy.plan, request)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            # Drops the call if it is still queued; a running one finishes in the background.
            future.cancel()
            raise

    def _fall_back(self, request: PlanningRequest, *, reason: str) -> PlanningResult:
        if reason == "timeout":
            logger.warning("Planning strategy %s timed out after %.1fs", self.name, self.timeout_seconds)
        log_metric("planner.fallback", 1, metadata={"strategy": self.name, "reason": reason})
        return self.fallback.plan(request)
