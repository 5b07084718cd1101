from __future__ import annotations

import sys

import scriptconfig as scfg

from ..host import check_commands, host_is_debian_like, install_deps_debian, vbox_version
from ._common import _BaseCommand, _load_cfg


class DoctorCLI(_BaseCommand):
    """Check that VBoxManage is available."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        missing = check_commands(cfg.host.vboxmanage)
        if missing:
            print('❌ Missing required commands:', ', '.join(missing))
            print('💡 On Debian/Ubuntu you can run: vboxprov host install_deps')
            return 2
        version = vbox_version(cfg.host.vboxmanage)
        print(f'✅ VBoxManage is present (version {version or "unknown"}).')
        return 0


class HostInstallDepsCLI(_BaseCommand):
    """Install VirtualBox on Debian/Ubuntu."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        cls.cli(argv=argv, data=kwargs)
        if not host_is_debian_like():
            print(
                '❌ Host not detected as Debian/Ubuntu. Install VirtualBox manually.',
                file=sys.stderr,
            )
            return 2
        install_deps_debian()
        print('✅ Installed VirtualBox (best effort).')
        return 0


class HostModalCLI(scfg.ModalCLI):
    """Host preparation checks."""

    doctor = DoctorCLI
    install_deps = HostInstallDepsCLI
