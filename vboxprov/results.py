"""Result dataclasses used by provisioning runs."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ProvisionReport:
    machine: str
    phase: str = 'probe'
    steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str = ''

    def as_dict(self) -> dict[str, object]:
        return {
            'machine': self.machine,
            'phase': self.phase,
            'steps': list(self.steps),
            'warnings': list(self.warnings),
            'error': self.error,
        }
