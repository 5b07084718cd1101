"""Tests for VM resource check helpers."""

from __future__ import annotations

from pathlib import Path

from vboxprov.resource_checks import _nearest_existing, vm_resource_warning_lines
from vboxprov.vmspec import DeviceDetails, HardDiskSpec, StorageController, VmSpec


def _spec(tmp_path: Path, memory_mb: int, size_mb: int) -> VmSpec:
    disk = HardDiskSpec(
        str(tmp_path / 'vms' / 'a.vdi'), DeviceDetails(0, 0), size_mb=size_mb
    )
    return VmSpec(
        'vm',
        memory_mb=memory_mb,
        controllers=(StorageController('IDE', hard_disks=(disk,)),),
    )


def test_no_warnings_when_host_is_large(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr('vboxprov.resource_checks.host_mem_total_mb', lambda: 8192)
    monkeypatch.setattr(
        'vboxprov.resource_checks.host_free_disk_mb', lambda p: 200_000
    )
    assert vm_resource_warning_lines(_spec(tmp_path, 1024, 8192)) == []


def test_warns_on_memory_and_disk(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr('vboxprov.resource_checks.host_mem_total_mb', lambda: 4096)
    monkeypatch.setattr('vboxprov.resource_checks.host_free_disk_mb', lambda p: 1000)
    warnings = vm_resource_warning_lines(_spec(tmp_path, 4000, 8192))
    text = '\n'.join(warnings)
    assert 'MemTotal=4096' in text
    assert 'free≈1000' in text


def test_unknown_host_values_are_skipped(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr('vboxprov.resource_checks.host_mem_total_mb', lambda: None)
    monkeypatch.setattr('vboxprov.resource_checks.host_free_disk_mb', lambda p: None)
    assert vm_resource_warning_lines(_spec(tmp_path, 10**6, 10**9)) == []


def test_nearest_existing(tmp_path) -> None:
    assert _nearest_existing(tmp_path / 'a' / 'b' / 'c.vdi') == tmp_path
