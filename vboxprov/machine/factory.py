"""Create a machine record and register it with the host."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..client import HostClient, RegisteredMachine
from ..vmspec import VmSpec

log = logger


def create_and_register(
    host: HostClient, spec: VmSpec, working_dir: str | Path
) -> RegisteredMachine:
    settings_file = host.compose_settings_path(spec.name, working_dir)
    log.debug('Creating machine {} with settings {}', spec.name, settings_file)
    machine = host.create_machine(
        settings_file,
        spec.name,
        spec.os_type_id,
        spec.vm_id,
        spec.force_overwrite,
    )
    host.register_machine(machine)
    log.info('Machine created: {}', spec.name)
    return machine
