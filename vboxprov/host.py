"""Host dependency checks and host package installation routines."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from .runtime import VBOXMANAGE, vboxmanage_cmd
from .util import run_cmd, which

log = logger


def check_commands(vboxmanage: str = VBOXMANAGE) -> list[str]:
    required = [vboxmanage or VBOXMANAGE]
    return [c for c in required if which(c) is None]


def vbox_version(vboxmanage: str = VBOXMANAGE) -> str:
    res = run_cmd(vboxmanage_cmd('--version', exe=vboxmanage), check=False)
    if res.code != 0:
        return ''
    return res.stdout.strip()


def host_is_debian_like() -> bool:
    try:
        data = Path('/etc/os-release').read_text(encoding='utf-8')
        return any(
            k in data for k in ('ID=debian', 'ID=ubuntu', 'ID_LIKE=debian')
        )
    except Exception:
        return False


def install_deps_debian() -> None:
    if not host_is_debian_like():
        raise RuntimeError(
            'Host is not detected as Debian/Ubuntu; install VirtualBox manually.'
        )
    run_cmd(['sudo', '-n', 'apt-get', 'update', '-y'], check=True, capture=False)
    run_cmd(
        ['sudo', '-n', 'apt-get', 'install', '-y', 'virtualbox'],
        check=True,
        capture=False,
    )
    # The extension pack needs a license prompt; only try it non-interactively.
    ext = run_cmd(
        ['sudo', '-n', 'apt-get', 'install', '-y', 'virtualbox-ext-pack'],
        check=False,
        capture=False,
    )
    if ext.code != 0:
        log.warning(
            'Optional package `virtualbox-ext-pack` was not installed. '
            'USB 2/3 controllers may be unavailable to machines.'
        )
