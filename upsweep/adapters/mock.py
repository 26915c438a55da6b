"""
Mock process runner — test double for command execution.

Records every spawn instead of starting a process. Configurable to
return a custom exit status, or raise, per program.
"""

from __future__ import annotations

from collections.abc import Sequence


class MockProcessRunner:
    """Universal fake for ``run_process``.

    By default every command exits 0. ``set_exit`` and ``set_error``
    change the result for commands whose program (argv[0]) or full
    command line matches.
    """

    def __init__(self, default_status: int = 0):
        self._default_status = default_status
        self._statuses: dict[str, int] = {}
        self._errors: dict[str, OSError] = {}
        self._call_log: list[list[str]] = []
        self._envs: list[dict[str, str] | None] = []

    @property
    def call_log(self) -> list[list[str]]:
        """All argvs this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[str]:
        """Received commands joined with spaces, for readable asserts."""
        return [" ".join(argv) for argv in self._call_log]

    @property
    def envs(self) -> list[dict[str, str] | None]:
        return self._envs

    def set_exit(self, match: str, status: int) -> None:
        """Exit with ``status`` for commands matching ``match``."""
        self._statuses[match] = status

    def set_error(self, match: str, error: OSError | None = None) -> None:
        """Fail to spawn commands matching ``match``."""
        self._errors[match] = error or FileNotFoundError(f"No such file: {match}")

    def _lookup(self, table: dict, argv: list[str]):
        line = " ".join(argv)
        for key in (line, argv[0] if argv else ""):
            if key in table:
                return table[key]
        return None

    def __call__(
        self,
        argv: Sequence[str],
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> int:
        argv = list(argv)
        self._call_log.append(argv)
        self._envs.append(env)

        error = self._lookup(self._errors, argv)
        if error is not None:
            raise error
        status = self._lookup(self._statuses, argv)
        return self._default_status if status is None else status

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._envs.clear()
        self._statuses.clear()
        self._errors.clear()
