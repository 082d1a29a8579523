"""LLM-backed planning strategy (OpenAI chat completions)."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional
from uuid import UUID, uuid4

import openai
from pydantic import BaseModel, Field, ValidationError

from agenda.planning.clock import Clock, utc_now
from agenda.planning.deterministic import DEFAULT_SLOT_DURATION, slot_hours, sort_backlog
from agenda.planning.errors import PlannerStrategyError
from agenda.planning.models import AgendaBlock, PlanningRequest, PlanningResult


class SuggestedBlock(BaseModel):
    project_id: UUID
    start: datetime
    end: datetime


class SuggestedAgenda(BaseModel):
    blocks: List[SuggestedBlock] = Field(default_factory=list)


SYSTEM_PROMPT = (
    "You are a careful personal planner. Split the user's projects into back-to-back "
    "fixed-length time blocks. Never exceed the horizon, never overlap blocks, and "
    "favour higher priority, then higher importance, then earlier due dates."
)


class OpenAIPlanningStrategy:
    """Ask a chat model for an agenda and convert the JSON answer into blocks."""

    name = "llm"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o",
        timeout_seconds: float = 10.0,
        slot_duration: timedelta = DEFAULT_SLOT_DURATION,
        clock: Clock = utc_now,
        id_factory: Callable[[], UUID] = uuid4,
        client: Any = None,
    ) -> None:
        self.model = model
        self.slot_duration = slot_duration
        self.clock = clock
        self.id_factory = id_factory
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def plan(self, request: PlanningRequest) -> PlanningResult:
        start = self.clock()
        completion = self._client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            temperature=0.2,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(request, start)},
            ],
        )
        content = completion.choices[0].message.content or "{}"
        return self.parse_response(request, content)

    def build_prompt(self, request: PlanningRequest, start: datetime) -> str:
        minutes = int(self.slot_duration.total_seconds() // 60)
        lines = [
            f"- id={project.id} title={project.title!r} category={project.category!r} "
            f"hours={project.estimated_hours:g} priority={project.priority} "
            f"importance={project.valence} due={project.due_date.isoformat()}"
            for project in sort_backlog(request.backlog)
        ]
        return (
            f"Plan the next {request.horizon_hours:g} hours starting at {start.isoformat()} "
            f"for a user with {request.energy.value} energy.\n"
            f"Every block must last exactly {minutes} minutes.\n"
            "Projects:\n"
            + ("\n".join(lines) or "- none")
            + "\nReturn a JSON object with key 'blocks': a list of objects with "
            "'project_id', 'start' and 'end' as ISO-8601 timestamps."
        )

    def parse_response(self, request: PlanningRequest, content: str) -> PlanningResult:
        try:
            suggested = SuggestedAgenda.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise PlannerStrategyError(f"Malformed planner response: {exc}") from exc

        blocks: List[AgendaBlock] = []
        for item in sorted(suggested.blocks, key=lambda entry: _as_utc(entry.start)):
            blocks.append(
                AgendaBlock(
                    id=self.id_factory(),
                    user_id=request.user_id,
                    project_id=item.project_id,
                    start=_as_utc(item.start),
                    end=_as_utc(item.end),
                )
            )
        return PlanningResult(
            blocks=blocks,
            total_hours=len(blocks) * slot_hours(self.slot_duration),
            strategy=self.name,
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_openai_strategy(
    api_key: Optional[str],
    *,
    model: str,
    timeout_seconds: float,
    slot_duration: timedelta,
) -> Optional[OpenAIPlanningStrategy]:
    """Return a strategy when an API key is configured, otherwise None."""
    if not api_key:
        return None
    return OpenAIPlanningStrategy(
        api_key=api_key,
        model=model,
        timeout_seconds=timeout_seconds,
        slot_duration=slot_duration,
    )
