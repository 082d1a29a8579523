"""Exceptions raised by the agenda planning core."""
from __future__ import annotations


class AgendaError(Exception):
    """Base class for planning errors."""


class InvalidArgumentError(AgendaError, ValueError):
    """Raised when a planning input is malformed or out of range."""


class PlannerStrategyError(AgendaError):
    """Raised when an external planning strategy returns an unusable result."""
