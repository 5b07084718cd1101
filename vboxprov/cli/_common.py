from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import ProvisionerConfig, config_path, load_or_default
from ..vboxmanage import VBoxManageHost
from ..vmspec import VmSpec, load_vmspec

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None, help='Path to config TOML (default: user config directory).'
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )


def _cfg_path(p: str | None) -> Path:
    return Path(p).resolve() if p else config_path()


def _load_cfg(config_path: str | None) -> ProvisionerConfig:
    return load_or_default(_cfg_path(config_path)).expanded_paths()


def _load_spec(spec_path: str | None) -> VmSpec:
    if not spec_path:
        raise RuntimeError('--spec is required (path to a VM spec TOML).')
    path = Path(spec_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f'VM spec not found: {path}')
    return load_vmspec(path)


def _make_host(cfg: ProvisionerConfig) -> VBoxManageHost:
    return VBoxManageHost.from_config(cfg)


__all__ = [name for name in globals() if not name.startswith('__')]
