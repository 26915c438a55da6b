"""
Domain models — Pydantic types for a run.

    from upsweep.core.models import Config, RemoteHost, StepOutcome
"""

from upsweep.core.models.config import Config, Misc, RemoteHost
from upsweep.core.models.outcome import StepOutcome

__all__ = [
    "Config",
    "Misc",
    "RemoteHost",
    "StepOutcome",
]
