"""Machine provisioning exports: probe, factory, locking, steps, orchestration."""

from __future__ import annotations

from .factory import create_and_register
from .locking import apply_locked
from .probe import machine_exists
from .provision import (
    Phase,
    Provisioner,
    create_and_register_machine,
    plan_steps,
)
from .steps import (
    add_controller_if_not_exists,
    apply_memory,
    attach_medium_if_not_attached,
    attach_nat_adapter,
    create_medium_if_not_exists,
    open_iso_medium,
    remove_stray_disk,
)

__all__ = [
    'Phase',
    'Provisioner',
    'add_controller_if_not_exists',
    'apply_locked',
    'apply_memory',
    'attach_medium_if_not_attached',
    'attach_nat_adapter',
    'create_and_register',
    'create_and_register_machine',
    'create_medium_if_not_exists',
    'machine_exists',
    'open_iso_medium',
    'plan_steps',
    'remove_stray_disk',
]
