from __future__ import annotations

import sys

import scriptconfig as scfg

from ..config import ProvisionerConfig, dump_toml, load_or_default, save
from ._common import _BaseCommand, _cfg_path


class ConfigInitCLI(_BaseCommand):
    """Write a default config file."""

    force = scfg.Value(
        False, isflag=True, help='Overwrite an existing config file.'
    )
    working_dir = scfg.Value('', help='Initial paths.working_dir value.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        if path.exists() and not args.force:
            print(f'Config already exists: {path}', file=sys.stderr)
            print('Use --force to overwrite it.', file=sys.stderr)
            return 2
        cfg = ProvisionerConfig()
        if str(args.working_dir or '').strip():
            cfg.paths.working_dir = str(args.working_dir).strip()
        save(path, cfg)
        print(f'Wrote config: {path}')
        return 0


class ConfigShowCLI(_BaseCommand):
    """Show the config as it will be used (defaults filled in)."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        print(f'# Config: {path}{"" if path.exists() else " (not found; defaults)"}')
        print(dump_toml(load_or_default(path)), end='')
        return 0


class ConfigPathCLI(_BaseCommand):
    """Print the config file path."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        print(_cfg_path(args.config))
        return 0


class ConfigModalCLI(scfg.ModalCLI):
    """Config file management."""

    init = ConfigInitCLI
    show = ConfigShowCLI
    path = ConfigPathCLI
