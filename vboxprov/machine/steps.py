"""Configuration steps applied to a freshly registered machine.

The ``apply_*``/``add_*``/``attach_*`` builders return mutations meant to be
run through :func:`vboxprov.machine.locking.apply_locked`. The remaining
helpers talk to the host or the filesystem without a machine lock.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from ..classify import HostErrorKind, classify_host_error
from ..client import AccessMode, HostClient, MachineSession, Medium
from ..errors import HostOperationFailure, LocalResourceWarning
from ..vmspec import (
    DeviceDetails,
    HardDiskSpec,
    IsoImageSpec,
    NatAdapterConfig,
    StorageController,
)

log = logger

Mutation = Callable[[MachineSession], None]


def apply_memory(host: HostClient, size_mb: int) -> Mutation:
    def mutation(session: MachineSession) -> None:
        host.set_memory(session, size_mb)
        log.debug('Set memory of {} to {} MiB', session.machine_name, size_mb)

    return mutation


def add_controller_if_not_exists(
    host: HostClient, controller: StorageController
) -> Mutation:
    def mutation(session: MachineSession) -> None:
        try:
            host.add_storage_controller(
                session, controller.name, controller.bus
            )
        except HostOperationFailure as ex:
            if classify_host_error(ex.message) is not HostErrorKind.CONTROLLER_EXISTS:
                raise
            log.debug(
                'Storage controller {} already present on {}',
                controller.name,
                session.machine_name,
            )

    return mutation


def attach_medium_if_not_attached(
    host: HostClient,
    medium: Medium,
    device_details: DeviceDetails,
    controller_name: str,
) -> Mutation:
    def mutation(session: MachineSession) -> None:
        try:
            host.attach_device(session, controller_name, device_details, medium)
        except HostOperationFailure as ex:
            if (
                classify_host_error(ex.message)
                is not HostErrorKind.MEDIUM_ALREADY_ATTACHED
            ):
                raise
            log.debug(
                'Medium {} already attached to {} port={} device={}',
                medium.location,
                controller_name,
                device_details.port,
                device_details.device_slot,
            )

    return mutation


def attach_nat_adapter(
    host: HostClient, slot: int, config: NatAdapterConfig
) -> Mutation:
    def mutation(session: MachineSession) -> None:
        host.configure_nat_adapter(session, slot, config)
        log.debug(
            'NAT adapter in slot {} configured on {} ({} redirect rules)',
            slot,
            session.machine_name,
            len(config.redirect_rules),
        )

    return mutation


def remove_stray_disk(disk_path: str) -> Optional[LocalResourceWarning]:
    """Delete a leftover file where a new disk medium will be created."""
    path = Path(disk_path)
    if not path.is_file():
        return None
    try:
        path.unlink()
    except OSError as ex:
        warning = LocalResourceWarning(disk_path, str(ex))
        log.warning('{}', warning)
        return warning
    log.info('Removed stray disk file {}', disk_path)
    return None


def create_medium_if_not_exists(
    host: HostClient, disk: HardDiskSpec, *, overwrite: bool = True
) -> Medium:
    """Create the backing medium for ``disk``.

    With ``overwrite`` a registration the host still holds for the same path
    is closed first, since the file behind it has just been removed.
    """
    if overwrite:
        stale = host.find_medium(disk.disk_path, 'HardDisk')
        if stale is not None:
            log.info('Closing stale medium registration {}', stale.location)
            host.close_medium(stale)
    return host.create_medium(disk)


def open_iso_medium(
    host: HostClient, iso: IsoImageSpec, *, overwrite: bool = False
) -> Medium:
    try:
        return host.open_medium(
            iso.source_path, 'DVD', AccessMode.READ_ONLY, overwrite
        )
    except HostOperationFailure as ex:
        if classify_host_error(ex.message) is not HostErrorKind.MEDIUM_NOT_FOUND:
            raise
        raise HostOperationFailure(
            f'ISO image {iso.source_path} does not exist on the host',
            operation=ex.operation or 'openMedium',
            machine=ex.machine,
            result=ex.result,
        ) from ex
