"""Adapters — everything that touches processes, hosts and tools.

Public re-exports for convenient access.
"""

from upsweep.adapters.mock import MockProcessRunner
from upsweep.adapters.privilege.sudo import BrokerState, PrivilegeBroker, SudoKind
from upsweep.adapters.shell.command import CommandExecutor, run_process

__all__ = [
    "BrokerState",
    "CommandExecutor",
    "MockProcessRunner",
    "PrivilegeBroker",
    "SudoKind",
    "run_process",
]
