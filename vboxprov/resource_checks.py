"""VM resource sanity checks run before a machine is created."""

from __future__ import annotations

import os
from pathlib import Path

from .vmspec import VmSpec


def host_mem_total_mb() -> int | None:
    try:
        text = Path('/proc/meminfo').read_text(encoding='utf-8', errors='ignore')
    except Exception:
        return None
    for line in text.splitlines():
        if line.startswith('MemTotal:'):
            parts = line.split()
            if len(parts) >= 2 and parts[1].isdigit():
                return int(parts[1]) // 1024
    return None


def _nearest_existing(path: Path) -> Path:
    for cand in (path, *path.parents):
        if cand.exists():
            return cand
    return Path('/')


def host_free_disk_mb(path: Path) -> int | None:
    try:
        stat = os.statvfs(str(_nearest_existing(path)))
    except Exception:
        return None
    return int(stat.f_bavail) * int(stat.f_frsize) // (1024**2)


def vm_resource_warning_lines(spec: VmSpec) -> list[str]:
    warnings: list[str] = []
    mem_total_mb = host_mem_total_mb()
    if mem_total_mb is not None and spec.memory_mb > int(mem_total_mb * 0.8):
        warnings.append(
            'Requested VM RAM is large relative to host total memory: '
            f'requested={spec.memory_mb} MiB, MemTotal={mem_total_mb} MiB. '
            'If configuration fails, lower memory_mb.'
        )

    for ctl in spec.controllers[:1]:
        for disk in ctl.hard_disks:
            free_mb = host_free_disk_mb(Path(disk.disk_path).expanduser())
            if free_mb is not None and disk.size_mb > free_mb * 0.9:
                warnings.append(
                    'Requested disk may be too large for free space: '
                    f'requested={disk.size_mb} MiB, free≈{free_mb} MiB '
                    f'(path={disk.disk_path}).'
                )
    return warnings
