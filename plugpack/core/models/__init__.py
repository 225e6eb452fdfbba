"""
Domain models for the plugin manager.

    from plugpack.core.models import PluginSpec, ResolvedPlugin, Job, UpdateDecision
"""

from plugpack.core.models.decision import UpdateDecision
from plugpack.core.models.job import Job, JobState
from plugpack.core.models.options import AddOptions, UpdateOptions, UpdateOutcome
from plugpack.core.models.spec import (
    DEFAULT_VERSION,
    FROZEN_VERSION,
    PluginSpec,
    ResolvedPlugin,
)

__all__ = [
    "AddOptions",
    "DEFAULT_VERSION",
    "FROZEN_VERSION",
    "Job",
    "JobState",
    "PluginSpec",
    "ResolvedPlugin",
    "UpdateDecision",
    "UpdateOptions",
    "UpdateOutcome",
]
