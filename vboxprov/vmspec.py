"""Desired-state VM specification, validation, and TOML loading.

A spec file looks like::

    name = "node1"
    os_type_id = "Ubuntu_64"
    memory_mb = 2048

    [[controllers]]
    name = "IDE"
    bus = "IDE"

    [[controllers.hard_disks]]
    path = "/vm/node1.vdi"
    port = 0
    device = 0

    [[controllers.iso_images]]
    source = "/iso/boot.iso"
    port = 1
    device = 0

    [[nat_adapters.0.redirect_rules]]
    protocol = "tcp"
    host_port = 2222
    guest_port = 22
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .errors import InvalidSpecification

BUS_TYPES = ('IDE', 'SATA', 'SCSI', 'SAS', 'Floppy', 'USB', 'PCIe', 'VirtioSCSI')

# Buses the first controller may use; hard disks and DVD drives both attach
# to these.
BOOT_BUS_TYPES = frozenset({'IDE', 'SATA', 'SCSI', 'SAS', 'VirtioSCSI', 'PCIe'})

DEVICE_TYPES = ('HardDisk', 'DVD')
PROTOCOLS = ('tcp', 'udp')


@dataclass(frozen=True)
class DeviceDetails:
    port: int
    device_slot: int
    device_type: str = 'HardDisk'


@dataclass(frozen=True)
class HardDiskSpec:
    disk_path: str
    device_details: DeviceDetails
    disk_format: str = 'vdi'
    size_mb: int = 8192


@dataclass(frozen=True)
class IsoImageSpec:
    source_path: str
    device_details: DeviceDetails


@dataclass(frozen=True)
class StorageController:
    name: str
    bus: str = 'IDE'
    hard_disks: tuple[HardDiskSpec, ...] = ()
    iso_images: tuple[IsoImageSpec, ...] = ()


@dataclass(frozen=True)
class RedirectRule:
    protocol: str
    host_ip: str
    host_port: int
    guest_ip: str
    guest_port: int
    name: str = ''

    @property
    def rule_name(self) -> str:
        return self.name or f'{self.protocol}-{self.host_port}-{self.guest_port}'


@dataclass(frozen=True)
class NatAdapterConfig:
    redirect_rules: tuple[RedirectRule, ...] = ()
    cable_connected: bool = True


@dataclass(frozen=True)
class VmSpec:
    name: str
    os_type_id: str = 'Other'
    vm_id: str = ''
    force_overwrite: bool = False
    memory_mb: int = 1024
    controllers: tuple[StorageController, ...] = ()
    nat_adapters: Mapping[int, NatAdapterConfig] = field(default_factory=dict)

    @property
    def boot_controller(self) -> StorageController:
        return self.controllers[0]


def validate_vmspec(spec: VmSpec) -> VmSpec:
    """Reject specs the orchestrator cannot act on, before any host call."""
    if not str(spec.name or '').strip():
        raise InvalidSpecification('VM spec has an empty machine name.')
    if not isinstance(spec.memory_mb, int) or spec.memory_mb <= 0:
        raise InvalidSpecification(
            f'memory_mb must be a positive integer (got {spec.memory_mb!r}) '
            f'for machine {spec.name}'
        )
    if not spec.controllers:
        raise InvalidSpecification(
            'VM spec has no storage controllers. Please verify that the VM '
            f'spec is a correct master node: {spec.name}'
        )
    first = spec.controllers[0]
    if first.bus not in BOOT_BUS_TYPES:
        raise InvalidSpecification(
            f'First controller {first.name!r} has bus {first.bus!r}, which '
            'cannot hold boot media. Please verify that the VM spec is a '
            f'correct master node: {spec.name}'
        )
    for ctl in spec.controllers:
        for disk in ctl.hard_disks:
            if disk.device_details.device_type != 'HardDisk':
                raise InvalidSpecification(
                    f'Hard disk {disk.disk_path} on controller {ctl.name!r} '
                    f'has device type {disk.device_details.device_type!r}; '
                    "expected 'HardDisk'"
                )
        for iso in ctl.iso_images:
            if iso.device_details.device_type != 'DVD':
                raise InvalidSpecification(
                    f'ISO image {iso.source_path} on controller {ctl.name!r} '
                    f'has device type {iso.device_details.device_type!r}; '
                    "expected 'DVD'"
                )
    names = [c.name for c in spec.controllers]
    if len(set(names)) != len(names):
        raise InvalidSpecification(
            f'Storage controller names must be unique: {names}'
        )
    return spec


def _as_int(raw: Mapping, key: str, default: int | None = None) -> int:
    value = raw.get(key, default)
    if value is None:
        raise InvalidSpecification(f'Missing required key {key!r}')
    try:
        return int(value)
    except (TypeError, ValueError) as ex:
        raise InvalidSpecification(
            f'Key {key!r} must be an integer (got {value!r})'
        ) from ex


def _device_details(raw: Mapping, device_type: str) -> DeviceDetails:
    dtype = str(raw.get('type', device_type))
    if dtype not in DEVICE_TYPES:
        raise InvalidSpecification(
            f'Unknown device type {dtype!r}; expected one of {DEVICE_TYPES}'
        )
    return DeviceDetails(
        port=_as_int(raw, 'port', 0),
        device_slot=_as_int(raw, 'device', 0),
        device_type=dtype,
    )


def _controller_from_dict(raw: Mapping) -> StorageController:
    name = str(raw.get('name', '')).strip()
    if not name:
        raise InvalidSpecification('Storage controller is missing a name')
    bus = str(raw.get('bus', 'IDE'))
    if bus not in BUS_TYPES:
        raise InvalidSpecification(
            f'Unknown bus {bus!r} for controller {name!r}; '
            f'expected one of {BUS_TYPES}'
        )
    disks = []
    for item in raw.get('hard_disks', []):
        path = str(item.get('path', '')).strip()
        if not path:
            raise InvalidSpecification(
                f'Hard disk on controller {name!r} is missing a path'
            )
        disks.append(
            HardDiskSpec(
                disk_path=path,
                device_details=_device_details(item, 'HardDisk'),
                disk_format=str(item.get('format', 'vdi')),
                size_mb=_as_int(item, 'size_mb', 8192),
            )
        )
    isos = []
    for item in raw.get('iso_images', []):
        source = str(item.get('source', '')).strip()
        if not source:
            raise InvalidSpecification(
                f'ISO image on controller {name!r} is missing a source'
            )
        isos.append(
            IsoImageSpec(
                source_path=source,
                device_details=_device_details(item, 'DVD'),
            )
        )
    return StorageController(
        name=name, bus=bus, hard_disks=tuple(disks), iso_images=tuple(isos)
    )


def _nat_from_dict(raw: Mapping) -> NatAdapterConfig:
    rules = []
    for item in raw.get('redirect_rules', []):
        protocol = str(item.get('protocol', 'tcp')).lower()
        if protocol not in PROTOCOLS:
            raise InvalidSpecification(
                f'Unknown redirect protocol {protocol!r}'
            )
        rules.append(
            RedirectRule(
                protocol=protocol,
                host_ip=str(item.get('host_ip', '')),
                host_port=_as_int(item, 'host_port'),
                guest_ip=str(item.get('guest_ip', '')),
                guest_port=_as_int(item, 'guest_port'),
                name=str(item.get('name', '')),
            )
        )
    return NatAdapterConfig(
        redirect_rules=tuple(rules),
        cable_connected=bool(raw.get('cable_connected', True)),
    )


def vmspec_from_dict(raw: Mapping) -> VmSpec:
    nat: dict[int, NatAdapterConfig] = {}
    for slot, body in dict(raw.get('nat_adapters', {})).items():
        try:
            key = int(slot)
        except (TypeError, ValueError) as ex:
            raise InvalidSpecification(
                f'NAT adapter slot must be an integer (got {slot!r})'
            ) from ex
        nat[key] = _nat_from_dict(body or {})
    return VmSpec(
        name=str(raw.get('name', '')).strip(),
        os_type_id=str(raw.get('os_type_id', 'Other')),
        vm_id=str(raw.get('vm_id', '')),
        force_overwrite=bool(raw.get('force_overwrite', False)),
        memory_mb=_as_int(raw, 'memory_mb', 1024),
        controllers=tuple(
            _controller_from_dict(c) for c in raw.get('controllers', [])
        ),
        nat_adapters=dict(sorted(nat.items())),
    )


def load_vmspec(path: Path) -> VmSpec:
    raw = tomllib.loads(Path(path).read_text(encoding='utf-8'))
    return vmspec_from_dict(raw)


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def _q(s: str) -> str:
    return f'"{_toml_escape(str(s))}"'


def dump_vmspec_toml(spec: VmSpec) -> str:
    lines = [
        f'name = {_q(spec.name)}',
        f'os_type_id = {_q(spec.os_type_id)}',
        f'vm_id = {_q(spec.vm_id)}',
        f'force_overwrite = {"true" if spec.force_overwrite else "false"}',
        f'memory_mb = {spec.memory_mb}',
        '',
    ]
    for ctl in spec.controllers:
        lines += ['[[controllers]]', f'name = {_q(ctl.name)}', f'bus = {_q(ctl.bus)}', '']
        for disk in ctl.hard_disks:
            d = disk.device_details
            lines += [
                '[[controllers.hard_disks]]',
                f'path = {_q(disk.disk_path)}',
                f'port = {d.port}',
                f'device = {d.device_slot}',
                f'type = {_q(d.device_type)}',
                f'format = {_q(disk.disk_format)}',
                f'size_mb = {disk.size_mb}',
                '',
            ]
        for iso in ctl.iso_images:
            d = iso.device_details
            lines += [
                '[[controllers.iso_images]]',
                f'source = {_q(iso.source_path)}',
                f'port = {d.port}',
                f'device = {d.device_slot}',
                f'type = {_q(d.device_type)}',
                '',
            ]
    for slot, nat in spec.nat_adapters.items():
        lines += [
            f'[nat_adapters.{slot}]',
            f'cable_connected = {"true" if nat.cable_connected else "false"}',
            '',
        ]
        for rule in nat.redirect_rules:
            lines += [
                f'[[nat_adapters.{slot}.redirect_rules]]',
                f'name = {_q(rule.name)}',
                f'protocol = {_q(rule.protocol)}',
                f'host_ip = {_q(rule.host_ip)}',
                f'host_port = {rule.host_port}',
                f'guest_ip = {_q(rule.guest_ip)}',
                f'guest_port = {rule.guest_port}',
                '',
            ]
    return '\n'.join(lines).rstrip() + '\n'
