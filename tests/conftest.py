from __future__ import annotations

from pathlib import Path

import pytest

from vboxprov.client import (
    AccessMode,
    HostClient,
    LockType,
    MachineSession,
    Medium,
    RegisteredMachine,
)
from vboxprov.errors import HostOperationFailure
from vboxprov.vmspec import (
    DeviceDetails,
    HardDiskSpec,
    IsoImageSpec,
    NatAdapterConfig,
    RedirectRule,
    StorageController,
    VmSpec,
)


class RecordingHost(HostClient):
    """In-memory host that records every primitive call in order.

    ``failures`` maps a call name to the exception that call raises.
    """

    def __init__(self, registered=(), failures=None):
        self.registered = set(registered)
        self.failures = dict(failures or {})
        self.calls: list[tuple] = []
        self.locks_held: dict[str, int] = {}
        self.unlock_count = 0

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def find_machine(self, name):
        self.calls.append(('find_machine', name))
        if 'find_machine' in self.failures:
            raise self.failures['find_machine']
        if name not in self.registered:
            raise HostOperationFailure(
                "VBoxManage showvminfo failed: VBoxManage: error: Could not "
                f"find a registered machine named '{name}'",
                operation='findMachineByName',
                machine=name,
            )
        return RegisteredMachine(name=name)

    def compose_settings_path(self, name, working_dir):
        self._record('compose_settings_path', name, str(working_dir))
        return Path(working_dir) / name / f'{name}.vbox'

    def create_machine(self, settings_file, name, os_type_id, vm_id, overwrite):
        self._record('create_machine', name, os_type_id, vm_id, overwrite)
        return RegisteredMachine(name=name, settings_file=str(settings_file))

    def register_machine(self, machine):
        self._record('register_machine', machine.name)
        self.registered.add(machine.name)
        return machine

    def lock_machine(self, name, lock_type=LockType.WRITE):
        self.calls.append(('lock_machine', name))
        if self.locks_held.get(name):
            raise AssertionError(f'{name} locked twice')
        self.locks_held[name] = 1
        return MachineSession(name, lock_type=lock_type)

    def unlock_machine(self, session):
        self.calls.append(('unlock_machine', session.machine_name))
        self.unlock_count += 1
        if not session.locked:
            raise AssertionError('unlock of an unlocked session')
        session.locked = False
        self.locks_held[session.machine_name] = 0
        if 'unlock_machine' in self.failures:
            raise self.failures['unlock_machine']

    def open_medium(self, path, device_type, access_mode, overwrite):
        self._record('open_medium', path, device_type, access_mode)
        return Medium(path, device_type, access_mode)

    def create_medium(self, disk):
        self._record('create_medium', disk.disk_path)
        return Medium(disk.disk_path, 'HardDisk', AccessMode.READ_WRITE)

    def find_medium(self, path, device_type):
        self._record('find_medium', path)
        return None

    def close_medium(self, medium):
        self._record('close_medium', medium.location)

    def attach_device(self, session, controller_name, device_details, medium):
        session.require_write()
        self._record('attach_device', controller_name, medium.location)

    def set_memory(self, session, size_mb):
        session.require_write()
        self._record('set_memory', size_mb)

    def add_storage_controller(self, session, name, bus):
        session.require_write()
        self._record('add_storage_controller', name, bus)

    def configure_nat_adapter(self, session, slot, config):
        session.require_write()
        self._record('configure_nat_adapter', slot)


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def make_host():
    return RecordingHost


@pytest.fixture
def node1_spec(tmp_path: Path) -> VmSpec:
    disk = tmp_path / 'node1.vdi'
    return VmSpec(
        name='node1',
        os_type_id='Ubuntu_64',
        memory_mb=2048,
        controllers=(
            StorageController(
                name='IDE',
                bus='IDE',
                hard_disks=(
                    HardDiskSpec(str(disk), DeviceDetails(0, 0, 'HardDisk')),
                ),
                iso_images=(
                    IsoImageSpec('/iso/boot.iso', DeviceDetails(1, 0, 'DVD')),
                ),
            ),
        ),
        nat_adapters={
            0: NatAdapterConfig(
                redirect_rules=(RedirectRule('tcp', '', 2222, '', 22),)
            )
        },
    )
