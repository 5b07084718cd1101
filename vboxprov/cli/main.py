"""Top-level modal CLI wiring, argv normalization, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger

from ._common import _load_cfg, log
from .config import ConfigModalCLI
from .host import HostModalCLI
from .machine import MachineModalCLI


class VBoxProvModalCLI(scfg.ModalCLI):
    """Idempotent VirtualBox machine provisioning."""

    machine = MachineModalCLI
    config = ConfigModalCLI
    host = HostModalCLI


def main(argv: list[str] | None = None) -> None:
    argv = _normalize_argv(sys.argv[1:] if argv is None else list(argv))
    try:
        cfg_verbosity = _load_cfg(_config_arg(argv)).verbosity
    except Exception:
        # A broken config file is reported by the command itself.
        cfg_verbosity = 1
    _setup_logging(_count_verbose(argv), cfg_verbosity)

    try:
        rc = VBoxProvModalCLI.main(argv=argv, _noexit=True)
    except Exception as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        log.error('vboxprov {} failed: {}', ' '.join(argv[:2]), ex)
        sys.exit(2)

    if any(flag in argv for flag in ('-h', '--help')):
        sys.exit(0)
    sys.exit(rc if isinstance(rc, int) else 0)


def _config_arg(argv: list[str]) -> str | None:
    for idx, item in enumerate(argv):
        if item.startswith('--config='):
            return item.split('=', 1)[1]
        if item == '--config' and idx + 1 < len(argv):
            return argv[idx + 1]
    return None


def _setup_logging(args_verbose: int, cfg_verbosity: int) -> None:
    logger.remove()
    effective_verbosity = args_verbose if args_verbose > 0 else cfg_verbosity
    level = 'WARNING'
    if effective_verbosity == 1:
        level = 'INFO'
    elif effective_verbosity >= 2:
        level = 'DEBUG'
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    logger.add(
        sys.stderr,
        level=level,
        colorize=colorize,
        format='<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>',
    )
    log.debug(
        'Logging configured at {} (effective_verbosity={}, colorize={})',
        level,
        effective_verbosity,
        colorize,
    )


def _normalize_argv(argv: list[str]) -> list[str]:
    """Normalize shortcuts and hyphenated spellings to scriptconfig command names."""
    if len(argv) >= 1 and argv[0] in {'create', 'exists', 'plan'}:
        return ['machine', *argv]
    if len(argv) >= 2 and argv[0] == 'host' and argv[1] == 'install-deps':
        return ['host', 'install_deps', *argv[2:]]
    return argv


def _count_verbose(argv: list[str]) -> int:
    count = 0
    for item in argv:
        if item == '--verbose':
            count += 1
        elif item.startswith('-') and not item.startswith('--'):
            short = item[1:]
            if short and set(short) <= {'v'}:
                count += len(short)
    return count
