"""
Tests for the step catalog — ordering, filtering and planning.
"""

import pytest

from upsweep.core.engine.catalog import (
    CUSTOM_COMMANDS,
    DISABLED_BY_CONFIG,
    NOT_APPLICABLE,
    REMOTES,
    Catalog,
    StepSelection,
    apply_ordering,
    default_catalog,
    plan_steps,
    validate_step_names,
)
from upsweep.core.errors import ConfigError
from upsweep.core.models.config import Config
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import LINUX, MACOS, WINDOWS, Step


def _noop(ctx) -> StepOutcome:
    return StepOutcome.success("noop")


def _catalog(**kwargs) -> Catalog:
    return Catalog(
        steps=(
            Step("alpha", "Alpha", _noop, frozenset({LINUX})),
            Step("beta", "Beta", _noop),
            Step("gamma", "Gamma", _noop, frozenset({MACOS})),
            Step("delta", "Delta", _noop),
            Step(CUSTOM_COMMANDS, "Custom commands", _noop),
        ),
        **kwargs,
    )


def _config(**data) -> Config:
    return Config.model_validate(data)


def _summary(plan) -> list[tuple[str, str, str | None]]:
    return [(p.name, p.title, p.skip_reason) for p in plan]


class TestCatalog:
    def test_names_include_remotes(self):
        names = _catalog().names()
        assert names[0] == REMOTES
        assert names[1:] == ["alpha", "beta", "gamma", "delta", CUSTOM_COMMANDS]

    def test_get(self):
        assert _catalog().get("beta").title == "Beta"
        assert _catalog().get("nope") is None

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate step names"):
            Catalog(steps=(Step("a", "A", _noop), Step("a", "A again", _noop)))


class TestOrdering:
    def test_exception_moves_step_forward(self):
        catalog = _catalog(ordering_exceptions=(("delta", "beta"),))
        assert [s.name for s in catalog.ordered()] == [
            "alpha", "delta", "beta", "gamma", CUSTOM_COMMANDS,
        ]

    def test_satisfied_exception_changes_nothing(self):
        catalog = _catalog(ordering_exceptions=(("alpha", "delta"),))
        assert [s.name for s in catalog.ordered()] == [s.name for s in catalog.steps]

    def test_unknown_names_ignored(self):
        steps = list(_catalog().steps)
        assert apply_ordering(steps, [("nope", "alpha")]) == steps

    def test_default_catalog(self):
        catalog = default_catalog()
        names = [s.name for s in catalog.ordered()]
        assert len(names) == len(set(names))
        assert names.index("rustup") < names.index("cargo")
        assert names.index("brew_formula") < names.index("brew_cask")
        assert names[0] == "system"
        assert names[-1] == CUSTOM_COMMANDS


class TestPlan:
    def test_platform_mismatch_skipped(self):
        plan = plan_steps(_catalog(), Config(), StepSelection(), LINUX)
        assert _summary(plan) == [
            ("alpha", "Alpha", None),
            ("beta", "Beta", None),
            ("gamma", "Gamma", NOT_APPLICABLE),
            ("delta", "Delta", None),
        ]
        gamma = plan[2]
        assert not gamma.runnable
        assert gamma.metadata == {"quiet": True}

    def test_other_platform(self):
        plan = plan_steps(_catalog(), Config(), StepSelection(), WINDOWS)
        assert [p.name for p in plan if not p.runnable] == ["alpha", "gamma"]

    def test_disabled_by_config(self):
        plan = plan_steps(_catalog(), _config(misc={"disable": ["beta"]}), StepSelection(), LINUX)
        assert ("beta", "Beta", DISABLED_BY_CONFIG) in _summary(plan)

    def test_cli_only_removes_others(self):
        plan = plan_steps(_catalog(), Config(), StepSelection(only=("delta",)), LINUX)
        assert _summary(plan) == [("delta", "Delta", None)]

    def test_config_only(self):
        plan = plan_steps(_catalog(), _config(misc={"only": ["beta"]}), StepSelection(), LINUX)
        assert _summary(plan) == [("beta", "Beta", None)]

    def test_cli_only_overrides_config_disable(self):
        config = _config(misc={"disable": ["beta"]})
        plan = plan_steps(_catalog(), config, StepSelection(only=("beta",)), LINUX)
        assert _summary(plan) == [("beta", "Beta", None)]

    def test_skip_removes_entirely(self):
        plan = plan_steps(_catalog(), Config(), StepSelection(skip=("beta", "gamma")), LINUX)
        assert [p.name for p in plan] == ["alpha", "delta"]

    def test_custom_commands_expand_in_order(self):
        config = _config(commands={"second": "echo 2", "first": "echo 1"})
        plan = plan_steps(_catalog(), config, StepSelection(), LINUX)
        custom = [p for p in plan if p.name == CUSTOM_COMMANDS]
        assert [p.title for p in custom] == ["second", "first"]
        assert all(p.runnable for p in custom)

    def test_custom_commands_filter(self):
        config = _config(commands={"a": "echo a", "b": "echo b", "c": "echo c"})
        selection = StepSelection(custom_commands=("c", "a"))
        plan = plan_steps(_catalog(), config, selection, LINUX)
        assert [p.title for p in plan if p.name == CUSTOM_COMMANDS] == ["a", "c"]

    def test_custom_commands_disabled(self):
        config = _config(commands={"a": "echo a"}, misc={"disable": [CUSTOM_COMMANDS]})
        plan = plan_steps(_catalog(), config, StepSelection(), LINUX)
        assert (CUSTOM_COMMANDS, "Custom commands", DISABLED_BY_CONFIG) in _summary(plan)

    def test_deterministic(self):
        config = _config(
            misc={"disable": ["delta"], "only": ["alpha", "beta", "delta", CUSTOM_COMMANDS]},
            commands={"x": "echo x"},
        )
        selection = StepSelection(skip=("beta",))
        first = plan_steps(_catalog(), config, selection, LINUX)
        second = plan_steps(_catalog(), config, selection, LINUX)
        assert _summary(first) == _summary(second)
        assert [p.name for p in first] == ["alpha", "delta", CUSTOM_COMMANDS]


class TestValidateNames:
    def test_unknown_config_name(self):
        config = _config(misc={"disable": ["nope"]})
        with pytest.raises(ConfigError, match="misc.disable: unknown step"):
            validate_step_names(_catalog(), config, StepSelection())

    def test_unknown_selection_name(self):
        with pytest.raises(ConfigError, match="--skip"):
            validate_step_names(_catalog(), Config(), StepSelection(skip=("nope",)))

    def test_pseudo_steps_are_known(self):
        config = _config(misc={"disable": [REMOTES, CUSTOM_COMMANDS]})
        validate_step_names(_catalog(), config, StepSelection())

    def test_plan_raises(self):
        with pytest.raises(ConfigError):
            plan_steps(_catalog(), _config(misc={"ignore_failures": ["nope"]}), StepSelection(), LINUX)
