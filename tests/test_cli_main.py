"""Tests for top-level CLI helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
from loguru import logger

from vboxprov.cli import main
from vboxprov.cli.host import DoctorCLI
from vboxprov.cli.main import _config_arg, _count_verbose, _normalize_argv


@pytest.fixture(autouse=True)
def _drop_cli_log_sink():
    yield
    logger.remove()


def test_normalize_argv_shortcuts() -> None:
    assert _normalize_argv(['create', '--spec', 'a.toml']) == [
        'machine',
        'create',
        '--spec',
        'a.toml',
    ]
    assert _normalize_argv(['exists', '--name', 'vm']) == [
        'machine',
        'exists',
        '--name',
        'vm',
    ]
    assert _normalize_argv(['host', 'install-deps']) == ['host', 'install_deps']
    assert _normalize_argv(['config', 'show']) == ['config', 'show']


def test_count_verbose() -> None:
    assert _count_verbose(['-v']) == 1
    assert _count_verbose(['-vv', '--verbose']) == 3
    assert _count_verbose(['-x', '--spec', 'v']) == 0


def test_main_exits_with_command_code(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr('vboxprov.cli.host.check_commands', lambda exe: [])
    monkeypatch.setattr('vboxprov.cli.host.vbox_version', lambda exe: '7.0.14')
    with pytest.raises(SystemExit) as info:
        main(['host', 'doctor', '--config', str(tmp_path / 'config.toml')])
    assert info.value.code == 0


def test_main_reports_errors(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as info:
        main(
            [
                'plan',
                '--spec',
                str(tmp_path / 'missing.toml'),
                '--config',
                str(tmp_path / 'config.toml'),
            ]
        )
    assert info.value.code == 2
    assert 'ERROR: VM spec not found' in capsys.readouterr().err


def test_doctor_reports_missing_vboxmanage(
    monkeypatch, tmp_path: Path, capsys
) -> None:
    monkeypatch.setattr(
        'vboxprov.cli.host.check_commands', lambda exe: ['VBoxManage']
    )
    rc = DoctorCLI.main(argv=False, config=str(tmp_path / 'config.toml'))
    assert rc == 2
    assert 'VBoxManage' in capsys.readouterr().out


def test_config_arg() -> None:
    assert _config_arg(['plan', '--config', 'a.toml']) == 'a.toml'
    assert _config_arg(['plan', '--config=b.toml']) == 'b.toml'
    assert _config_arg(['plan', '--config']) is None
    assert _config_arg(['plan']) is None
