"""
Remote dispatcher — run upsweep on other hosts over ssh.

Each configured host gets one ``ssh -t`` invocation of the remote
upsweep with the local run's flags. Hosts run one after another in
config order; a host that fails is recorded and the next one still runs.
"""

from __future__ import annotations

import logging
import re
import socket

from upsweep.core.context import ExecutionContext, RunMode
from upsweep.core.models.config import Config, RemoteHost
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.observability.logging_config import PREFIX_VAR

logger = logging.getLogger(__name__)

# Read by the remote side's logging setup to label its output
REMOTE_PREFIX_VAR = PREFIX_VAR


class RemoteDispatcher:
    """Selects remote hosts and runs the tool on them.

    Args:
        config: Effective configuration (host list, ssh settings).
        host_limit: Regular expression; only hosts whose destination or
            name matches (``re.search``) are contacted.
        local_hostname: Name of this machine; a host with the same name
            is never contacted. Defaults to ``socket.gethostname()``.
    """

    def __init__(
        self,
        config: Config,
        host_limit: str | None = None,
        local_hostname: str | None = None,
    ):
        self._config = config
        self._limit = re.compile(host_limit) if host_limit else None
        self._local = (local_hostname or socket.gethostname()).lower()

    # ── Selection ────────────────────────────────────────────────

    def hosts(self) -> list[RemoteHost]:
        """Hosts to contact, in config order."""
        selected = []
        for host in self._config.misc.remote_hosts:
            if self._is_local(host):
                logger.debug("Skipping remote %s: it is this machine", host.label)
                continue
            if self._limit is not None and not (
                self._limit.search(host.destination)
                or (host.name and self._limit.search(host.name))
            ):
                logger.debug("Skipping remote %s: excluded by host limit", host.label)
                continue
            selected.append(host)
        return selected

    def _is_local(self, host: RemoteHost) -> bool:
        remote = host.hostname.lower()
        return remote == self._local or remote == self._local.split(".", 1)[0]

    # ── Invocation ───────────────────────────────────────────────

    @staticmethod
    def title(host: RemoteHost) -> str:
        return f"Remote ({host.label})"

    def build_command(self, host: RemoteHost, ctx: ExecutionContext, ssh: str = "ssh") -> list[str]:
        """The full ssh command line for ``host``."""
        misc = self._config.misc
        argv = [ssh, *misc.ssh_arguments, *host.ssh_arguments]
        if host.port is not None:
            argv += ["-p", str(host.port)]
        argv += [
            "-t",
            host.destination,
            "env",
            f"{REMOTE_PREFIX_VAR}={host.label}",
            host.path or misc.remote_path,
            "run",
        ]
        argv += remote_flags(ctx)
        return argv

    def dispatch(self, ctx: ExecutionContext, host: RemoteHost) -> StepOutcome:
        """Run the tool on ``host``.

        Raises:
            ToolMissing: ``ssh`` is not installed.
        """
        ssh = ctx.require("ssh")
        title = self.title(host)
        logger.info("Dispatching to %s", host.destination)
        return ctx.execute(title, self.build_command(host, ctx, ssh=ssh))


def remote_flags(ctx: ExecutionContext) -> list[str]:
    """Flags that carry this run's intent to the remote side."""
    flags = []
    if ctx.dry_run:
        flags.append("--dry-run")
    if ctx.assume_yes:
        flags.append("--yes")
    if ctx.cleanup:
        flags.append("--cleanup")
    if ctx.mode is RunMode.DAMP:
        flags.append("--confirm")
    if ctx.no_retry:
        flags.append("--no-retry")
    return flags
