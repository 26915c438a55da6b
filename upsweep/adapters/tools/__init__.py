"""Built-in tool adapters, in catalog order."""

from __future__ import annotations

from upsweep.adapters.tools.dev import dev_steps
from upsweep.adapters.tools.system import system_steps
from upsweep.core.models.step import Step


def builtin_steps() -> list[Step]:
    """Every built-in adapter step, in declaration order."""
    return [*system_steps(), *dev_steps()]


__all__ = ["builtin_steps"]
