"""Idempotent create-and-configure orchestration for one VM spec."""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Callable, TypeVar

from loguru import logger

from ..client import HostClient, RegisteredMachine
from ..errors import HostOperationFailure, PreconditionViolation, VBoxProvError
from ..results import ProvisionReport
from ..vmspec import DeviceDetails, StorageController, VmSpec, validate_vmspec
from . import steps
from .factory import create_and_register
from .locking import apply_locked
from .probe import machine_exists

log = logger

T = TypeVar('T')


class Phase(enum.Enum):
    PROBE = 'probe'
    CREATE = 'create'
    CONFIGURE = 'configure'
    DONE = 'done'
    REJECTED = 'rejected'
    FAILED = 'failed'


def _slot_label(controller: str, details: DeviceDetails) -> str:
    return f'{controller}:{details.port}:{details.device_slot}'


def plan_steps(spec: VmSpec) -> list[str]:
    """The configuration steps a run of ``spec`` performs, in order."""
    validate_vmspec(spec)
    ctl = spec.boot_controller
    plan = [f'set-memory({spec.memory_mb})', f'add-controller({ctl.name})']
    for disk in ctl.hard_disks:
        plan += [
            f'delete-stray-disk({disk.disk_path})',
            f'create-medium({disk.disk_path})',
            f'attach-device({_slot_label(ctl.name, disk.device_details)})',
        ]
    for iso in ctl.iso_images:
        plan += [
            f'open-medium({iso.source_path})',
            f'attach-device({_slot_label(ctl.name, iso.device_details)})',
        ]
    for slot in sorted(spec.nat_adapters):
        plan.append(f'configure-nat({slot})')
    return plan


class Provisioner:
    """Creates and configures exactly one machine per instance.

    ``phase`` follows PROBE -> CREATE -> CONFIGURE -> DONE, ending in
    REJECTED when the name is already registered and in FAILED on any other
    error. ``report`` records the configuration steps that completed.
    """

    def __init__(self, host: HostClient, working_dir: str | Path):
        self.host = host
        self.working_dir = working_dir
        self.phase = Phase.PROBE
        self.report: ProvisionReport | None = None

    def _enter(self, phase: Phase) -> None:
        log.debug('Provisioning phase {} -> {}', self.phase.value, phase.value)
        self.phase = phase
        if self.report is not None:
            self.report.phase = phase.value

    def __call__(self, spec: VmSpec) -> RegisteredMachine:
        if self.phase is not Phase.PROBE or self.report is not None:
            raise VBoxProvError(
                f'Provisioner already ran (phase={self.phase.value}); '
                'use a new instance per machine.'
            )
        self.report = ProvisionReport(machine=spec.name)
        try:
            validate_vmspec(spec)
            exists = self._unlocked(
                spec.name, 'probe', lambda: machine_exists(self.host, spec.name)
            )
            if exists:
                self._enter(Phase.REJECTED)
                raise PreconditionViolation(spec.name)
            self._enter(Phase.CREATE)
            machine = self._unlocked(
                spec.name,
                'create-machine',
                lambda: create_and_register(self.host, spec, self.working_dir),
            )
            self._enter(Phase.CONFIGURE)
            self._configure(spec)
            self._enter(Phase.DONE)
        except PreconditionViolation as ex:
            self.report.error = str(ex)
            raise
        except Exception as ex:
            self._enter(Phase.FAILED)
            self.report.error = str(ex)
            log.error('Provisioning {} failed: {}', spec.name, ex)
            raise
        log.info('Machine {} provisioned', spec.name)
        return machine

    def _configure(self, spec: VmSpec) -> None:
        name = spec.name
        host = self.host
        self._locked(
            name,
            f'set-memory({spec.memory_mb})',
            steps.apply_memory(host, spec.memory_mb),
        )
        ctl = spec.boot_controller
        if len(spec.controllers) > 1:
            log.info(
                'Only the first storage controller is configured; skipping {}',
                [c.name for c in spec.controllers[1:]],
            )
        self._locked(
            name,
            f'add-controller({ctl.name})',
            steps.add_controller_if_not_exists(host, ctl),
        )
        self._setup_hard_disks(name, ctl)
        self._setup_dvds(spec, ctl)
        for slot in sorted(spec.nat_adapters):
            self._locked(
                name,
                f'configure-nat({slot})',
                steps.attach_nat_adapter(host, slot, spec.nat_adapters[slot]),
            )

    def _setup_hard_disks(self, name: str, ctl: StorageController) -> None:
        for disk in ctl.hard_disks:
            warning = steps.remove_stray_disk(disk.disk_path)
            if warning is not None:
                self.report.warnings.append(str(warning))
            self.report.steps.append(f'delete-stray-disk({disk.disk_path})')
            medium = self._unlocked(
                name,
                f'create-medium({disk.disk_path})',
                lambda: steps.create_medium_if_not_exists(self.host, disk),
            )
            self._locked(
                name,
                f'attach-device({_slot_label(ctl.name, disk.device_details)})',
                steps.attach_medium_if_not_attached(
                    self.host, medium, disk.device_details, ctl.name
                ),
            )

    def _setup_dvds(self, spec: VmSpec, ctl: StorageController) -> None:
        for iso in ctl.iso_images:
            medium = self._unlocked(
                spec.name,
                f'open-medium({iso.source_path})',
                lambda: steps.open_iso_medium(
                    self.host, iso, overwrite=spec.force_overwrite
                ),
            )
            self._locked(
                spec.name,
                f'attach-device({_slot_label(ctl.name, iso.device_details)})',
                steps.attach_medium_if_not_attached(
                    self.host, medium, iso.device_details, ctl.name
                ),
            )

    def _locked(self, name: str, step: str, mutation: steps.Mutation) -> None:
        apply_locked(self.host, name, mutation, step=step)
        self.report.steps.append(step)

    def _unlocked(self, name: str, step: str, func: Callable[[], T]) -> T:
        try:
            result = func()
        except HostOperationFailure as ex:
            if not ex.step:
                ex.step = step
            if not ex.machine:
                ex.machine = name
            raise
        if self.phase is Phase.CONFIGURE:
            self.report.steps.append(step)
        return result


def create_and_register_machine(
    host: HostClient, spec: VmSpec, working_dir: str | Path
) -> RegisteredMachine:
    return Provisioner(host, working_dir)(spec)
