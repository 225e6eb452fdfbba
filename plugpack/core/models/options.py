"""
Typed options for the manager entry points.

Validated once at the entry point; unknown keys are rejected.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class AddOptions(BaseModel):
    """Options for ``PackManager.add``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bang: bool = False  # register only, don't mark as loaded (``:packadd!``)


class UpdateOptions(BaseModel):
    """Options for ``PackManager.update``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    force: bool = False    # apply without confirmation
    offline: bool = False  # skip fetching from sources


class UpdateOutcome(Enum):
    """How an update call ended."""

    APPLIED = "applied"
    PENDING_CONFIRMATION = "pending_confirmation"
    CANCELLED = "cancelled"
    NOTHING_TO_UPDATE = "nothing_to_update"
