"""
Config model — the user's view of a run, loaded from upsweep.yml.

The core only reads from this model: which steps are disabled or
ignored, the remote host list, and the custom command tables.
Mapping order in the YAML file is preserved (it is the execution order
of custom commands).
Unknown keys are rejected, so a typo fails loudly instead of being
ignored.
"""

from __future__ import annotations

import shlex
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RemoteHost(BaseModel):
    """A host on which the tool is run over ssh.

    In the config file a host is either a plain ``[user@]host`` string or
    a mapping with connection parameters.
    """

    model_config = ConfigDict(extra="forbid")

    destination: str
    name: str = ""
    port: int | None = None
    ssh_arguments: list[str] = Field(default_factory=list)
    path: str | None = None     # remote executable, overrides misc.remote_path

    @field_validator("ssh_arguments", mode="before")
    @classmethod
    def _split_arguments(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @property
    def label(self) -> str:
        """Name shown in the report."""
        return self.name or self.destination

    @property
    def hostname(self) -> str:
        """Host part of the destination, without the user."""
        return self.destination.rsplit("@", 1)[-1]


class Misc(BaseModel):
    """General run settings."""

    model_config = ConfigDict(extra="forbid")

    disable: list[str] = Field(default_factory=list)
    only: list[str] = Field(default_factory=list)
    ignore_failures: list[str] = Field(default_factory=list)

    remote_hosts: list[RemoteHost] = Field(
        default_factory=list,
        validation_alias=AliasChoices("remote_hosts", "remote_topgrades"),
    )
    remote_path: str = "upsweep"
    ssh_arguments: list[str] = Field(default_factory=list)
    remotes_after_pre_commands: bool = False

    sudo_command: str | None = None
    pre_sudo: bool = False

    assume_yes: bool = False
    no_retry: bool = False
    cleanup: bool = False

    @field_validator("remote_hosts", mode="before")
    @classmethod
    def _coerce_hosts(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"destination": v} if isinstance(v, str) else v for v in value]
        return value

    @field_validator("ssh_arguments", mode="before")
    @classmethod
    def _split_arguments(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value


class Config(BaseModel):
    """Root configuration.

    Custom command tables map a display name to a shell command line.
    """

    model_config = ConfigDict(extra="forbid")

    misc: Misc = Field(default_factory=Misc)
    pre_commands: dict[str, str] = Field(default_factory=dict)
    commands: dict[str, str] = Field(default_factory=dict)
    post_commands: dict[str, str] = Field(default_factory=dict)

    @field_validator("misc", "pre_commands", "commands", "post_commands", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        # An empty YAML section (``misc:``) parses as None
        return {} if value is None else value

    def is_disabled(self, step_name: str) -> bool:
        return step_name in self.misc.disable

    def ignores_failure(self, step_name: str) -> bool:
        return step_name in self.misc.ignore_failures

    def referenced_step_names(self) -> dict[str, list[str]]:
        """Step names the config refers to, keyed by setting."""
        return {
            "misc.disable": list(self.misc.disable),
            "misc.only": list(self.misc.only),
            "misc.ignore_failures": list(self.misc.ignore_failures),
        }
