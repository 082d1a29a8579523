"""Scheduler selection driven by configuration."""
from __future__ import annotations

import logging
from datetime import timedelta

from agenda.core.config import Settings, settings as default_settings
from agenda.planning.deterministic import DeterministicScheduler
from agenda.planning.external import ExternalScheduler, Scheduler
from agenda.planning.llm import build_openai_strategy
from agenda.planning.models import PlanningRequest, PlanningResult

logger = logging.getLogger(__name__)


def build_scheduler(config: Settings | None = None) -> Scheduler:
    """Return the deterministic scheduler, or the LLM strategy wrapped with a fallback."""
    config = config or default_settings
    slot_duration = timedelta(minutes=config.planner_slot_minutes)
    deterministic = DeterministicScheduler(slot_duration=slot_duration)

    if config.planner_strategy != "llm":
        return deterministic

    strategy = build_openai_strategy(
        config.openai_api_key,
        model=config.openai_model,
        timeout_seconds=config.planner_llm_timeout_seconds,
        slot_duration=slot_duration,
    )
    if strategy is None:
        logger.info("PLANNER_STRATEGY=llm but OPENAI_API_KEY is missing; using deterministic planner.")
        return deterministic

    return ExternalScheduler(strategy, deterministic, timeout_seconds=config.planner_llm_timeout_seconds)


def plan_agenda(request: PlanningRequest, scheduler: Scheduler | None = None) -> PlanningResult:
    """Plan with the given scheduler or the one selected by current settings."""
    return (scheduler or build_scheduler()).plan(request)
