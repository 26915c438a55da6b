"""
OS package managers and platform-specific tools.
"""

from __future__ import annotations

from upsweep.adapters.tools.base import Invocation, binary_step, cmd, run_invocations
from upsweep.core.context import ExecutionContext
from upsweep.core.errors import SkipStep
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import (
    FREEBSD,
    LINUX,
    MACOS,
    OPENBSD,
    UNIX,
    WINDOWS,
    Step,
    current_platform,
)

# Probed in order; the first installed one is the system package manager.
_LINUX_MANAGERS: tuple[tuple[str, tuple[Invocation, ...]], ...] = (
    ("apt-get", (
        cmd("update", elevated=True),
        cmd("dist-upgrade", elevated=True, yes_flag="-y"),
        cmd("clean", elevated=True, cleanup=True),
        cmd("autoremove", elevated=True, yes_flag="-y", cleanup=True),
    )),
    ("dnf", (
        cmd("upgrade", "--refresh", elevated=True, yes_flag="-y"),
        cmd("autoremove", elevated=True, yes_flag="-y", cleanup=True),
    )),
    ("pacman", (
        cmd("-Syu", elevated=True, yes_flag="--noconfirm"),
        cmd("-Sc", elevated=True, yes_flag="--noconfirm", cleanup=True),
    )),
    ("zypper", (
        cmd("refresh", elevated=True),
        cmd("update", elevated=True, yes_flag="--no-confirm"),
    )),
    ("apk", (cmd("upgrade", "--update-cache", elevated=True),)),
    ("xbps-install", (cmd("-Su", elevated=True, yes_flag="-y"),)),
    ("emerge", (cmd("--sync", elevated=True), cmd("-uDNa", "@world", elevated=True))),
)


def run_linux_system(ctx: ExecutionContext) -> StepOutcome:
    for binary, invocations in _LINUX_MANAGERS:
        if ctx.find(binary):
            return run_invocations(ctx, "System update", binary, invocations)
    raise SkipStep("no supported system package manager found")


def run_system(ctx: ExecutionContext) -> StepOutcome:
    """Upgrade the operating system's own packages."""
    platform = current_platform()
    if platform == LINUX:
        return run_linux_system(ctx)
    if platform == MACOS:
        return run_invocations(
            ctx, "System update", "softwareupdate", (cmd("--install", "--all"),)
        )
    if platform == FREEBSD:
        return run_invocations(
            ctx,
            "System update",
            "pkg",
            (
                cmd("upgrade", elevated=True, yes_flag="-y"),
                cmd("autoremove", elevated=True, yes_flag="-y", cleanup=True),
            ),
        )
    if platform == OPENBSD:
        return run_invocations(ctx, "System update", "pkg_add", (cmd("-u", elevated=True),))
    raise SkipStep("no system update for this platform")


def system_steps() -> list[Step]:
    """Platform package managers, in run order."""
    return [
        Step(
            name="system",
            title="System update",
            run=run_system,
            platforms=frozenset({LINUX, MACOS, FREEBSD, OPENBSD}),
        ),
        binary_step(
            "winget", "Winget", "winget",
            cmd("upgrade", "--all", yes_flag="--accept-package-agreements"),
            platforms=frozenset({WINDOWS}),
        ),
        binary_step(
            "chocolatey", "Chocolatey", "choco",
            cmd("upgrade", "all", elevated=True, yes_flag="-y"),
            platforms=frozenset({WINDOWS}),
        ),
        binary_step(
            "scoop", "Scoop", "scoop",
            cmd("update"),
            cmd("update", "*"),
            cmd("cleanup", "*", cleanup=True),
            platforms=frozenset({WINDOWS}),
        ),
        binary_step(
            "flatpak", "Flatpak", "flatpak",
            cmd("update", yes_flag="-y"),
            cmd("uninstall", "--unused", yes_flag="-y", cleanup=True),
            platforms=frozenset({LINUX}),
        ),
        binary_step(
            "snap", "snap", "snap",
            cmd("refresh", elevated=True),
            platforms=frozenset({LINUX}),
        ),
        binary_step(
            "brew_formula", "Brew", "brew",
            cmd("update"),
            cmd("upgrade"),
            cmd("cleanup", cleanup=True),
            platforms=frozenset({LINUX, MACOS}),
        ),
        binary_step(
            "brew_cask", "Brew Cask", "brew",
            cmd("upgrade", "--cask"),
            cmd("cleanup", cleanup=True),
            platforms=frozenset({MACOS}),
        ),
        binary_step(
            "macports", "MacPorts", "port",
            cmd("selfupdate", elevated=True),
            cmd("upgrade", "outdated", elevated=True),
            cmd("-N", "reclaim", elevated=True, cleanup=True),
            platforms=frozenset({MACOS}),
        ),
        binary_step(
            "mas", "App Store", "mas",
            cmd("upgrade"),
            platforms=frozenset({MACOS}),
        ),
        binary_step(
            "nix", "nix", "nix-channel",
            cmd("--update"),
            platforms=UNIX,
        ),
    ]
