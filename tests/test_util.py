from __future__ import annotations

import pytest

from vboxprov.util import CmdError, expand, shell_join
from vboxprov.util import run_cmd as _run_cmd


def test_shell_join_quotes() -> None:
    cmd = ["VBoxManage", "showvminfo", "my vm", "c'd"]
    s = shell_join(cmd)
    assert "'my vm'" in s
    assert "VBoxManage" in s


def test_run_cmd_success_and_failure() -> None:
    ok = _run_cmd(["bash", "-lc", "printf ok"], check=True, capture=True)
    assert ok.code == 0
    assert ok.stdout == "ok"
    bad = _run_cmd(["bash", "-lc", "exit 7"], check=False, capture=True)
    assert bad.code == 7
    with pytest.raises(CmdError) as info:
        _run_cmd(
            ["bash", "-lc", "echo nope >&2; exit 9"], check=True, capture=True
        )
    assert info.value.result.code == 9
    assert "nope" in info.value.result.stderr


def test_run_cmd_passes_env(monkeypatch) -> None:
    seen = {}

    class P:
        returncode = 0
        stdout = ""
        stderr = ""

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return P()

    monkeypatch.setattr("vboxprov.util.subprocess.run", fake_run)
    _run_cmd(["VBoxManage", "list", "vms"], env={"VBOX_USER_HOME": "/x"})
    assert seen["env"] == {"VBOX_USER_HOME": "/x"}
    assert seen["capture_output"] is True


def test_expand(monkeypatch) -> None:
    monkeypatch.setenv("HOME", "/home/tester")
    monkeypatch.setenv("VMS", "vms")
    assert expand("~/$VMS") == "/home/tester/vms"
