"""VirtualBox host client that drives the VBoxManage command line.

VBoxManage has no verb for holding a machine lock across several commands,
so :meth:`VBoxManageHost.lock_machine` takes an exclusive ``flock`` on a
per-machine lock file. Every provisioning process on the host goes through
the same lock directory, which serializes mutations of one machine while
leaving other machines free. VBoxManage still takes VirtualBox's own session
lock for the duration of each individual command.
"""

from __future__ import annotations

import fcntl
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from .client import (
    AccessMode,
    HostClient,
    LockType,
    MachineSession,
    Medium,
    RegisteredMachine,
)
from .config import ProvisionerConfig
from .errors import HostOperationFailure
from .runtime import (
    BUS_ARGS,
    DEVICE_TYPE_ARGS,
    MEDIUM_KIND_ARGS,
    natpf_rule,
    nic_index,
    vboxmanage_cmd,
    vboxmanage_env,
)
from .util import CmdError, CmdResult, ensure_dir, run_cmd
from .vmspec import DeviceDetails, HardDiskSpec, NatAdapterConfig

log = logger

_UUID_LINE = re.compile(r'^UUID:\s*(?P<uuid>[0-9a-fA-F-]{36})', re.MULTILINE)
_SETTINGS_LINE = re.compile(r"^Settings file:\s*'(?P<path>[^']*)'", re.MULTILINE)
_MEDIUM_CREATED = re.compile(r'UUID:\s*(?P<uuid>[0-9a-fA-F-]{36})')


def parse_machinereadable(text: str) -> dict[str, str]:
    """Parse ``key="value"`` lines from ``showvminfo --machinereadable``."""
    out: dict[str, str] = {}
    for line in text.splitlines():
        if '=' not in line:
            continue
        key, _, value = line.partition('=')
        key = key.strip().strip('"')
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        out[key] = value
    return out


def parse_medium_blocks(text: str) -> list[dict[str, str]]:
    """Parse the blank-line separated blocks of ``list hdds``/``list dvds``."""
    blocks: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            if current:
                blocks.append(current)
                current = {}
            continue
        key, sep, value = line.partition(':')
        if sep:
            current[key.strip()] = value.strip()
    if current:
        blocks.append(current)
    return blocks


class VBoxManageHost(HostClient):
    def __init__(
        self,
        exe: str = 'VBoxManage',
        *,
        lock_dir: str | Path,
        vbox_user_home: str = '',
    ):
        self.exe = exe
        self.lock_dir = Path(lock_dir)
        self.vbox_user_home = vbox_user_home

    @classmethod
    def from_config(cls, cfg: ProvisionerConfig) -> 'VBoxManageHost':
        cfg = cfg.expanded_paths()
        return cls(
            cfg.host.vboxmanage,
            lock_dir=cfg.paths.lock_dir,
            vbox_user_home=cfg.host.vbox_user_home,
        )

    def _run(self, operation: str, *args: str, machine: str = '') -> CmdResult:
        cmd = vboxmanage_cmd(*args, exe=self.exe)
        try:
            return run_cmd(
                cmd,
                check=True,
                capture=True,
                env=vboxmanage_env(self.vbox_user_home),
            )
        except CmdError as ex:
            detail = (ex.result.stderr or ex.result.stdout or '').strip()
            raise HostOperationFailure(
                f'VBoxManage {args[0]} failed: {detail or "(no output)"}',
                operation=operation,
                machine=machine,
                result=ex.result,
            ) from ex

    def find_machine(self, name: str) -> RegisteredMachine:
        res = self._run(
            'findMachineByName',
            'showvminfo',
            name,
            '--machinereadable',
            machine=name,
        )
        info = parse_machinereadable(res.stdout)
        return RegisteredMachine(
            name=info.get('name', name),
            settings_file=info.get('CfgFile', ''),
            uuid=info.get('UUID', ''),
        )

    def compose_settings_path(self, name: str, working_dir: str | Path) -> Path:
        return Path(working_dir) / name / f'{name}.vbox'

    def create_machine(
        self,
        settings_file: str | Path,
        name: str,
        os_type_id: str,
        vm_id: str,
        overwrite: bool,
    ) -> RegisteredMachine:
        settings_file = Path(settings_file)
        if settings_file.name != f'{name}.vbox':
            raise HostOperationFailure(
                f'Settings file {settings_file} does not match machine name',
                operation='createMachine',
                machine=name,
            )
        if overwrite and settings_file.exists():
            log.info('Overwriting existing settings file {}', settings_file)
            settings_file.unlink()
        args = [
            'createvm',
            '--name',
            name,
            '--ostype',
            os_type_id,
            '--basefolder',
            str(settings_file.parent.parent),
        ]
        if vm_id:
            args += ['--uuid', vm_id]
        res = self._run('createMachine', *args, machine=name)
        uuid_match = _UUID_LINE.search(res.stdout)
        path_match = _SETTINGS_LINE.search(res.stdout)
        return RegisteredMachine(
            name=name,
            settings_file=path_match.group('path')
            if path_match
            else str(settings_file),
            uuid=uuid_match.group('uuid') if uuid_match else vm_id,
        )

    def register_machine(self, machine: RegisteredMachine) -> RegisteredMachine:
        self._run(
            'registerMachine',
            'registervm',
            machine.settings_file,
            machine=machine.name,
        )
        log.info('Registered machine {} ({})', machine.name, machine.settings_file)
        return machine

    def lock_machine(
        self, name: str, lock_type: LockType = LockType.WRITE
    ) -> MachineSession:
        mode = fcntl.LOCK_EX if lock_type is LockType.WRITE else fcntl.LOCK_SH
        lock_file = self.lock_dir / f'{name}.lock'
        try:
            ensure_dir(self.lock_dir)
            handle = open(lock_file, 'a+')
        except OSError as ex:
            raise HostOperationFailure(
                f'Cannot open lock file {lock_file}: {ex}',
                operation='lockMachine',
                machine=name,
            ) from ex
        try:
            fcntl.flock(handle.fileno(), mode)
        except OSError as ex:
            handle.close()
            raise HostOperationFailure(
                f'Cannot lock machine {name}: {ex}',
                operation='lockMachine',
                machine=name,
            ) from ex
        log.debug('Locked machine {} ({})', name, lock_type.value)
        return MachineSession(name, lock_type=lock_type, handle=handle)

    def unlock_machine(self, session: MachineSession) -> None:
        if not session.locked:
            raise HostOperationFailure(
                f'Machine {session.machine_name} is not locked by this session',
                operation='unlockMachine',
                machine=session.machine_name,
            )
        handle = session.handle
        session.locked = False
        session.handle = None
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as ex:
            raise HostOperationFailure(
                f'Cannot unlock machine {session.machine_name}: {ex}',
                operation='unlockMachine',
                machine=session.machine_name,
            ) from ex
        finally:
            handle.close()
        log.debug('Unlocked machine {}', session.machine_name)

    def open_medium(
        self,
        path: str,
        device_type: str,
        access_mode: AccessMode,
        overwrite: bool,
    ) -> Medium:
        kind = MEDIUM_KIND_ARGS[device_type]
        if overwrite and access_mode is AccessMode.READ_WRITE:
            # The command line spelling of the SDK's forceNewUuid.
            self._run('openMedium', 'internalcommands', 'sethduuid', path)
        res = self._run('openMedium', 'showmediuminfo', kind, path)
        match = _UUID_LINE.search(res.stdout)
        return Medium(
            location=path,
            device_type=device_type,
            access_mode=access_mode,
            uuid=match.group('uuid') if match else '',
        )

    def create_medium(self, disk: HardDiskSpec) -> Medium:
        res = self._run(
            'createMedium',
            'createmedium',
            'disk',
            '--filename',
            disk.disk_path,
            '--size',
            str(disk.size_mb),
            '--format',
            disk.disk_format.upper(),
        )
        match = _MEDIUM_CREATED.search(res.stdout)
        return Medium(
            location=disk.disk_path,
            device_type='HardDisk',
            access_mode=AccessMode.READ_WRITE,
            uuid=match.group('uuid') if match else '',
        )

    def find_medium(self, path: str, device_type: str) -> Optional[Medium]:
        listing = 'hdds' if device_type == 'HardDisk' else 'dvds'
        res = self._run('findMedium', 'list', listing)
        want = str(Path(path))
        for block in parse_medium_blocks(res.stdout):
            if block.get('Location') == want:
                return Medium(
                    location=want,
                    device_type=device_type,
                    uuid=block.get('UUID', ''),
                )
        return None

    def close_medium(self, medium: Medium) -> None:
        kind = MEDIUM_KIND_ARGS[medium.device_type]
        self._run('closeMedium', 'closemedium', kind, medium.uuid or medium.location)

    def attach_device(
        self,
        session: MachineSession,
        controller_name: str,
        device_details: DeviceDetails,
        medium: Medium,
    ) -> None:
        session.require_write()
        self._run(
            'attachDevice',
            'storageattach',
            session.machine_name,
            '--storagectl',
            controller_name,
            '--port',
            str(device_details.port),
            '--device',
            str(device_details.device_slot),
            '--type',
            DEVICE_TYPE_ARGS[device_details.device_type],
            '--medium',
            medium.location,
            machine=session.machine_name,
        )

    def set_memory(self, session: MachineSession, size_mb: int) -> None:
        session.require_write()
        self._run(
            'setMemory',
            'modifyvm',
            session.machine_name,
            '--memory',
            str(size_mb),
            machine=session.machine_name,
        )

    def add_storage_controller(
        self, session: MachineSession, name: str, bus: str
    ) -> None:
        session.require_write()
        self._run(
            'addStorageController',
            'storagectl',
            session.machine_name,
            '--name',
            name,
            '--add',
            BUS_ARGS[bus],
            machine=session.machine_name,
        )

    def configure_nat_adapter(
        self, session: MachineSession, slot: int, config: NatAdapterConfig
    ) -> None:
        session.require_write()
        nic = nic_index(slot)
        args = [
            'modifyvm',
            session.machine_name,
            f'--nic{nic}',
            'nat',
            f'--cableconnected{nic}',
            'on' if config.cable_connected else 'off',
        ]
        for rule in config.redirect_rules:
            args += [
                f'--natpf{nic}',
                natpf_rule(
                    rule.rule_name,
                    rule.protocol,
                    rule.host_ip,
                    rule.host_port,
                    rule.guest_ip,
                    rule.guest_port,
                ),
            ]
        self._run('configureNatAdapter', *args, machine=session.machine_name)
