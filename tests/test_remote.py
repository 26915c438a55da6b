"""
Tests for the remote dispatcher — host selection and the ssh command line.
"""

import re

import pytest

from upsweep.adapters.remote.ssh import RemoteDispatcher
from upsweep.core.context import RunMode
from upsweep.core.errors import ToolMissing
from upsweep.core.models.config import Config


def _config(hosts, **misc) -> Config:
    return Config.model_validate({"misc": {"remote_hosts": hosts, **misc}})


class TestHosts:
    def test_config_order(self):
        dispatcher = RemoteDispatcher(_config(["c", "a", "b"]), local_hostname="here")
        assert [h.destination for h in dispatcher.hosts()] == ["c", "a", "b"]

    def test_local_host_skipped(self):
        config = _config(["me@workstation", "box1", "WORKSTATION"])
        dispatcher = RemoteDispatcher(config, local_hostname="workstation.lan")
        assert [h.destination for h in dispatcher.hosts()] == ["box1"]

    def test_limit_is_a_regex(self):
        config = _config(["build1", "build2", "web1", {"destination": "10.0.0.5", "name": "builder"}])
        dispatcher = RemoteDispatcher(config, host_limit="^build", local_hostname="here")
        assert [h.label for h in dispatcher.hosts()] == ["build1", "build2", "builder"]

    def test_invalid_limit(self):
        with pytest.raises(re.error):
            RemoteDispatcher(_config(["a"]), host_limit="(", local_hostname="here")

    def test_legacy_key(self):
        config = Config.model_validate({"misc": {"remote_topgrades": ["box1", "box2"]}})
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        assert [h.destination for h in dispatcher.hosts()] == ["box1", "box2"]


class TestBuildCommand:
    def test_full_command(self, make_ctx):
        config = _config(
            [{"destination": "me@box2", "name": "box2", "port": 2222, "ssh_arguments": "-A"}],
            ssh_arguments="-o ConnectTimeout=5",
        )
        ctx = make_ctx(mode=RunMode.DRY, config=config, assume_yes=True)
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        host = dispatcher.hosts()[0]
        assert dispatcher.build_command(host, ctx) == [
            "ssh", "-o", "ConnectTimeout=5", "-A", "-p", "2222",
            "-t", "me@box2", "env", "UPSWEEP_PREFIX=box2", "upsweep", "run",
            "--dry-run", "--yes",
        ]

    def test_host_path_and_flags(self, make_ctx):
        config = _config([{"destination": "box1", "path": "~/.local/bin/upsweep"}])
        ctx = make_ctx(mode=RunMode.DAMP, config=config, no_retry=True)
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        argv = dispatcher.build_command(dispatcher.hosts()[0], ctx)
        assert argv[-4:] == ["~/.local/bin/upsweep", "run", "--confirm", "--no-retry"]

    def test_cleanup_flag(self, make_ctx):
        config = _config(["box1"])
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        argv = dispatcher.build_command(dispatcher.hosts()[0], make_ctx(config=config, cleanup=True))
        assert argv[-3:] == ["upsweep", "run", "--cleanup"]

    def test_remote_path_setting(self, make_ctx):
        config = _config(["box1"], remote_path="/opt/upsweep/bin/upsweep")
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        argv = dispatcher.build_command(dispatcher.hosts()[0], make_ctx(config=config))
        assert argv[-2:] == ["/opt/upsweep/bin/upsweep", "run"]


class TestDispatch:
    def test_requires_ssh(self, make_ctx):
        config = _config(["box1"])
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        with pytest.raises(ToolMissing):
            dispatcher.dispatch(make_ctx(config=config), dispatcher.hosts()[0])

    def test_runs_ssh(self, make_ctx, mock_runner):
        config = _config(["box1"])
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        outcome = dispatcher.dispatch(make_ctx(config=config, installed=("ssh",)), dispatcher.hosts()[0])
        assert outcome.ok
        assert outcome.name == "Remote (box1)"
        assert mock_runner.commands == ["/usr/bin/ssh -t box1 env UPSWEEP_PREFIX=box1 upsweep run"]

    def test_failure(self, make_ctx, mock_runner):
        mock_runner.set_exit("/usr/bin/ssh", 255)
        config = _config(["box1"])
        dispatcher = RemoteDispatcher(config, local_hostname="here")
        outcome = dispatcher.dispatch(make_ctx(config=config, installed=("ssh",)), dispatcher.hosts()[0])
        assert outcome.failed
        assert "exit status 255" in outcome.error
