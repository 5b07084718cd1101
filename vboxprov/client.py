"""Host client boundary: the primitive operations provisioning is built from."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .errors import SessionNotLocked
from .vmspec import DeviceDetails, HardDiskSpec, NatAdapterConfig


class LockType(enum.Enum):
    SHARED = 'shared'
    WRITE = 'write'


class AccessMode(enum.Enum):
    READ_ONLY = 'ReadOnly'
    READ_WRITE = 'ReadWrite'


@dataclass(frozen=True)
class RegisteredMachine:
    name: str
    settings_file: str = ''
    uuid: str = ''


@dataclass(frozen=True)
class Medium:
    location: str
    device_type: str
    access_mode: AccessMode = AccessMode.READ_WRITE
    uuid: str = ''


@dataclass
class MachineSession:
    """A locked, mutable view of one machine's configuration."""

    machine_name: str
    lock_type: LockType = LockType.WRITE
    locked: bool = True
    handle: Any = field(default=None, repr=False)

    def require_write(self) -> None:
        if not self.locked or self.lock_type is not LockType.WRITE:
            raise SessionNotLocked(
                f'Session for machine {self.machine_name} is not write-locked '
                f'(locked={self.locked}, lock_type={self.lock_type.value})'
            )


class HostClient:
    """Operations a virtualization host must offer.

    Implementations raise :class:`~vboxprov.errors.HostOperationFailure` for
    every rejected call. Calls taking a session must call
    ``session.require_write()`` before touching the host.
    """

    def find_machine(self, name: str) -> RegisteredMachine:
        raise NotImplementedError

    def compose_settings_path(self, name: str, working_dir: str | Path) -> Path:
        raise NotImplementedError

    def create_machine(
        self,
        settings_file: str | Path,
        name: str,
        os_type_id: str,
        vm_id: str,
        overwrite: bool,
    ) -> RegisteredMachine:
        raise NotImplementedError

    def register_machine(self, machine: RegisteredMachine) -> RegisteredMachine:
        raise NotImplementedError

    def lock_machine(
        self, name: str, lock_type: LockType = LockType.WRITE
    ) -> MachineSession:
        raise NotImplementedError

    def unlock_machine(self, session: MachineSession) -> None:
        raise NotImplementedError

    def open_medium(
        self,
        path: str,
        device_type: str,
        access_mode: AccessMode,
        overwrite: bool,
    ) -> Medium:
        raise NotImplementedError

    def create_medium(self, disk: HardDiskSpec) -> Medium:
        raise NotImplementedError

    def find_medium(self, path: str, device_type: str) -> Optional[Medium]:
        raise NotImplementedError

    def close_medium(self, medium: Medium) -> None:
        raise NotImplementedError

    def attach_device(
        self,
        session: MachineSession,
        controller_name: str,
        device_details: DeviceDetails,
        medium: Medium,
    ) -> None:
        raise NotImplementedError

    def set_memory(self, session: MachineSession, size_mb: int) -> None:
        raise NotImplementedError

    def add_storage_controller(
        self, session: MachineSession, name: str, bus: str
    ) -> None:
        raise NotImplementedError

    def configure_nat_adapter(
        self, session: MachineSession, slot: int, config: NatAdapterConfig
    ) -> None:
        raise NotImplementedError
