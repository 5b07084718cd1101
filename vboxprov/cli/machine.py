"""CLI commands for creating and inspecting machines."""

from __future__ import annotations

import scriptconfig as scfg

from ..machine import Provisioner, machine_exists, plan_steps
from ..resource_checks import vm_resource_warning_lines
from ..util import expand
from ._common import _BaseCommand, _load_cfg, _load_spec, _make_host, log


class MachineCreateCLI(_BaseCommand):
    """Create, register, and configure a machine from a VM spec file."""

    spec = scfg.Value(None, help='Path to the VM spec TOML.')
    working_dir = scfg.Value(
        '', help='Override paths.working_dir for the settings file.'
    )
    dry_run = scfg.Value(
        False, isflag=True, help='Print the planned steps without running.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        spec = _load_spec(args.spec)
        for line in vm_resource_warning_lines(spec):
            log.warning(line)
        override = str(args.working_dir or '').strip()
        working_dir = expand(override) if override else cfg.paths.working_dir
        if args.dry_run:
            steps = plan_steps(spec)
            print(f'probe({spec.name})')
            print(f'create-machine({spec.name}, working_dir={working_dir})')
            for step in steps:
                print(step)
            return 0
        prov = Provisioner(_make_host(cfg), working_dir)
        machine = prov(spec)
        log.debug('Provision report: {}', prov.report.as_dict())
        for warning in prov.report.warnings:
            print(f'⚠️  {warning}')
        print(f'✅ Machine {machine.name} registered: {machine.settings_file}')
        return 0


class MachineExistsCLI(_BaseCommand):
    """Report whether a machine name is registered on the host."""

    name = scfg.Value('', help='Machine name to look up.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        name = str(args.name or '').strip()
        if not name:
            raise RuntimeError('--name is required.')
        cfg = _load_cfg(args.config)
        if machine_exists(_make_host(cfg), name):
            print(f'{name}: registered')
            return 0
        print(f'{name}: not registered')
        return 1


class MachinePlanCLI(_BaseCommand):
    """Validate a VM spec file and print its configuration steps."""

    spec = scfg.Value(None, help='Path to the VM spec TOML.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        spec = _load_spec(args.spec)
        for step in plan_steps(spec):
            print(step)
        return 0


class MachineModalCLI(scfg.ModalCLI):
    """Machine creation and lookup."""

    create = MachineCreateCLI
    exists = MachineExistsCLI
    plan = MachinePlanCLI
