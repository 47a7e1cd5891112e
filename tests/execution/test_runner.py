import subprocess
from types import SimpleNamespace

import pytest

from cephmon.execution.runner import CommandError, CommandExecutor
from cephmon.utils.ssh_runner import SSHStatusExecutor


def test_execute_returns_stdout(monkeypatch):
    seen = {}

    def fake_run(argv, **kwargs):
        seen["argv"] = argv
        seen["timeout"] = kwargs["timeout"]
        return SimpleNamespace(returncode=0, stdout='{"quorum": [0]}', stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    out = CommandExecutor(timeout=5).execute_for_status("ceph", ["mon_status", "--format", "json"])

    assert out == '{"quorum": [0]}'
    assert seen["argv"] == ["ceph", "mon_status", "--format", "json"]
    assert seen["timeout"] == 5


def test_nonzero_exit_raises(monkeypatch):
    monkeypatch.setattr(
        subprocess, "run",
        lambda argv, **kw: SimpleNamespace(returncode=1, stdout="", stderr="error connecting to the cluster"),
    )
    with pytest.raises(CommandError) as ei:
        CommandExecutor().execute_for_status("ceph", ["mon_status"])
    assert ei.value.returncode == 1
    assert "error connecting" in str(ei.value)


def test_timeout_raises(monkeypatch):
    def fake_run(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(CommandError) as ei:
        CommandExecutor(timeout=1).execute_for_status("ceph", ["mon_status"])
    assert ei.value.returncode == -1


def test_dry_run_does_not_execute(monkeypatch):
    def boom(*a, **kw):
        raise AssertionError("should not run")

    monkeypatch.setattr(subprocess, "run", boom)
    ex = CommandExecutor(dry_run=True, dry_run_output="{}")
    assert ex.execute_for_status("ceph", ["mon_status"]) == "{}"


class FakeSSH:
    def __init__(self, rc=0, out="", err=""):
        self.result = (rc, out, err)
        self.calls = []

    def run(self, cmd, *, sudo=False, timeout=None):
        self.calls.append((cmd, sudo, timeout))
        return self.result


def test_ssh_status_executor_quotes_and_sudo():
    ssh = FakeSSH(out='{"quorum": []}')
    out = SSHStatusExecutor(ssh, timeout=7).execute_for_status("ceph", ["mon_status", "--cluster=my cluster"])
    assert out == '{"quorum": []}'
    assert ssh.calls == [("ceph mon_status '--cluster=my cluster'", True, 7)]


def test_ssh_status_executor_raises_on_failure():
    ssh = FakeSSH(rc=13, err="permission denied")
    with pytest.raises(CommandError) as ei:
        SSHStatusExecutor(ssh, sudo=False).execute_for_status("ceph", ["mon_status"])
    assert ei.value.returncode == 13
    assert ssh.calls[0][1] is False
