"""
Config check use case — validate upsweep.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from upsweep.core.config.loader import ConfigError, find_config_file, load_config
from upsweep.core.engine.catalog import Catalog, StepSelection, default_catalog, validate_step_names
from upsweep.core.models.config import Config


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: Config | None = None
    config_path: Path | None = None
    exists: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        misc = self.config.misc if self.config else None
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "exists": self.exists,
            "errors": self.errors,
            "warnings": self.warnings,
            "disabled": list(misc.disable) if misc else [],
            "remote_hosts": [h.label for h in misc.remote_hosts] if misc else [],
            "custom_commands": {
                "pre": len(self.config.pre_commands),
                "main": len(self.config.commands),
                "post": len(self.config.post_commands),
            } if self.config else {},
        }


def check_config(config_path: Path | None = None, catalog: Catalog | None = None) -> ConfigCheckResult:
    """Validate the configuration and report issues.

    Args:
        config_path: Optional explicit path to upsweep.yml.
        catalog: Catalog to check step names against (default: built-in).

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()
    path, _ = find_config_file(config_path)
    result.config_path = path
    result.exists = path.is_file()

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    if not result.exists:
        result.warnings.append(f"No config file at {path}, using defaults.")

    # Step names must exist in the catalog
    try:
        validate_step_names(catalog or default_catalog(), config, StepSelection())
    except ConfigError as e:
        result.errors.extend(str(e).split("; "))

    misc = config.misc
    overlap = sorted(set(misc.only) & set(misc.disable))
    if overlap:
        result.warnings.append(
            f"Steps both in 'only' and 'disable' never run: {', '.join(overlap)}"
        )

    destinations = [h.destination for h in misc.remote_hosts]
    dupes = sorted({d for d in destinations if destinations.count(d) > 1})
    if dupes:
        result.warnings.append(f"Duplicate remote hosts: {', '.join(dupes)}")

    if config.commands and "custom_commands" in misc.disable:
        result.warnings.append(
            "'commands' is set but the custom_commands step is disabled."
        )

    result.valid = len(result.errors) == 0
    return result
