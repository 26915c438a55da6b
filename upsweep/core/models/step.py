"""
Step — one independently skippable unit of update work.

A step is a plain record: a stable name, the platforms it applies to and
a closure that does the work. The runner never needs to know what a
step does, only whether it applies and how to call it.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from upsweep.core.context import ExecutionContext
    from upsweep.core.models.outcome import StepOutcome

# ── Platforms ───────────────────────────────────────────────────

LINUX = "linux"
MACOS = "macos"
WINDOWS = "windows"
FREEBSD = "freebsd"
OPENBSD = "openbsd"

BSDS = frozenset({FREEBSD, OPENBSD})
UNIX = frozenset({LINUX, MACOS}) | BSDS
ALL_PLATFORMS = UNIX | {WINDOWS}


def current_platform() -> str:
    """Map ``sys.platform`` to one of the platform names above."""
    plat = sys.platform
    if plat.startswith("linux"):
        return LINUX
    if plat == "darwin":
        return MACOS
    if plat in ("win32", "cygwin"):
        return WINDOWS
    if plat.startswith("freebsd"):
        return FREEBSD
    if plat.startswith("openbsd"):
        return OPENBSD
    return plat


StepFunc = Callable[["ExecutionContext"], "StepOutcome"]


@dataclass(frozen=True)
class Step:
    """A catalog entry.

    Attributes:
        name: Stable identifier used in config keys and ``--only``/``--skip``.
        title: Display name used in headers and the report.
        run: Closure doing the work. May raise ``SkipStep``.
        platforms: Platforms the step applies to.
    """

    name: str
    title: str
    run: StepFunc
    platforms: frozenset[str] = ALL_PLATFORMS

    def applies_to(self, platform: str) -> bool:
        return platform in self.platforms
