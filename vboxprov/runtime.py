"""Runtime helpers for constructing VBoxManage command arguments."""

from __future__ import annotations

import os

VBOXMANAGE = 'VBoxManage'

# VBoxManage spelling of the storage bus names used in specs.
BUS_ARGS = {
    'IDE': 'ide',
    'SATA': 'sata',
    'SCSI': 'scsi',
    'SAS': 'sas',
    'Floppy': 'floppy',
    'USB': 'usb',
    'PCIe': 'pcie',
    'VirtioSCSI': 'virtio',
}

DEVICE_TYPE_ARGS = {
    'HardDisk': 'hdd',
    'DVD': 'dvddrive',
}

MEDIUM_KIND_ARGS = {
    'HardDisk': 'disk',
    'DVD': 'dvd',
}


def vboxmanage_cmd(*args: str, exe: str = VBOXMANAGE) -> list[str]:
    return [exe or VBOXMANAGE, '--nologo', *args]


def vboxmanage_env(vbox_user_home: str = '') -> dict[str, str] | None:
    """Environment for VBoxManage, or None to inherit ours unchanged."""
    if not vbox_user_home:
        return None
    env = dict(os.environ)
    env['VBOX_USER_HOME'] = vbox_user_home
    return env


def nic_index(slot: int) -> int:
    # VBoxManage numbers adapters from 1, VmSpec slots from 0.
    return int(slot) + 1


def natpf_rule(
    name: str,
    protocol: str,
    host_ip: str,
    host_port: int,
    guest_ip: str,
    guest_port: int,
) -> str:
    return f'{name},{protocol},{host_ip},{host_port},{guest_ip},{guest_port}'
