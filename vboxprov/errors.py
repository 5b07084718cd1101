"""Project-specific exception types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .util import CmdResult


class VBoxProvError(RuntimeError):
    """Base error for domain-level vboxprov failures."""


class InvalidSpecification(VBoxProvError, ValueError):
    """Raised when a VM specification cannot be provisioned as written."""


class PreconditionViolation(VBoxProvError):
    """Raised when the target machine name is already registered."""

    def __init__(self, machine: str):
        self.machine = machine
        super().__init__(f'Machine {machine} is already registered.')


class SessionNotLocked(VBoxProvError):
    """Raised when a mutating host call receives an unlocked session."""


class HostOperationFailure(VBoxProvError):
    """A host call was rejected.

    ``operation`` names the host primitive, ``machine`` and ``step`` locate
    the failure inside an orchestration run. ``step`` is usually filled in
    after the fact by the code that ran the step.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = '',
        machine: str = '',
        step: str = '',
        result: CmdResult | None = None,
    ):
        self.message = message
        self.operation = operation
        self.machine = machine
        self.step = step
        self.result = result
        super().__init__(message)

    def __str__(self) -> str:
        context = [
            f'{k}={v}'
            for k, v in (
                ('machine', self.machine),
                ('step', self.step),
                ('operation', self.operation),
            )
            if v
        ]
        if not context:
            return self.message
        return f'{self.message} ({", ".join(context)})'


class LocalResourceWarning(VBoxProvError):
    """A local file operation failed in a way that does not stop provisioning.

    These are logged and collected on the provisioning report; they are
    never raised out of the orchestrator.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f'File {path} could not be deleted: {reason}')
