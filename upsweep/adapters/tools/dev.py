"""
Language toolchains and developer tools, available on every platform.
"""

from __future__ import annotations

from upsweep.adapters.tools.base import binary_step, cmd
from upsweep.core.models.step import Step


def dev_steps() -> list[Step]:
    """Cross-platform tools, in run order."""
    return [
        binary_step("rustup", "rustup", "rustup", cmd("update")),
        binary_step("cargo", "cargo", "cargo-install-update", cmd("install-update", "-a")),
        binary_step("pipx", "pipx", "pipx", cmd("upgrade-all")),
        binary_step(
            "conda", "conda", "conda",
            cmd("update", "--all", yes_flag="-y"),
            cmd("clean", "--all", yes_flag="-y", cleanup=True),
        ),
        binary_step("gem", "gem", "gem", cmd("update"), cmd("cleanup", cleanup=True)),
        binary_step("node", "npm", "npm", cmd("update", "-g")),
        binary_step("deno", "deno", "deno", cmd("upgrade")),
        binary_step("helm", "helm", "helm", cmd("repo", "update")),
        binary_step("krew", "krew", "kubectl-krew", cmd("upgrade")),
        binary_step(
            "gcloud", "gcloud", "gcloud",
            cmd("components", "update", yes_flag="--quiet"),
        ),
        binary_step("tldr", "TLDR", "tldr", cmd("--update")),
    ]
