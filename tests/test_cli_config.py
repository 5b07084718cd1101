"""Tests for the config subcommands."""

from __future__ import annotations

from pathlib import Path

from vboxprov.cli.config import ConfigInitCLI, ConfigPathCLI, ConfigShowCLI
from vboxprov.config import load


def test_config_init_writes_and_refuses_overwrite(
    tmp_path: Path, capsys
) -> None:
    cfg_path = tmp_path / 'config.toml'
    rc = ConfigInitCLI.main(
        argv=False, config=str(cfg_path), working_dir='/srv/vms'
    )
    assert rc == 0
    assert load(cfg_path).paths.working_dir == '/srv/vms'

    rc = ConfigInitCLI.main(argv=False, config=str(cfg_path))
    assert rc == 2
    assert '--force' in capsys.readouterr().err

    rc = ConfigInitCLI.main(argv=False, config=str(cfg_path), force=True)
    assert rc == 0
    assert load(cfg_path).paths.working_dir == '~/VirtualBox VMs/vboxprov'


def test_config_show_missing_file_uses_defaults(tmp_path: Path, capsys) -> None:
    cfg_path = tmp_path / 'config.toml'
    assert ConfigShowCLI.main(argv=False, config=str(cfg_path)) == 0
    out = capsys.readouterr().out
    assert 'not found; defaults' in out
    assert 'vboxmanage = "VBoxManage"' in out


def test_config_path(tmp_path: Path, capsys) -> None:
    cfg_path = tmp_path / 'config.toml'
    assert ConfigPathCLI.main(argv=False, config=str(cfg_path)) == 0
    assert capsys.readouterr().out.strip() == str(cfg_path.resolve())
