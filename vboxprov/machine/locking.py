"""Run one configuration mutation under an exclusive machine lock."""

from __future__ import annotations

from typing import Callable, TypeVar

from loguru import logger

from ..client import HostClient, LockType, MachineSession
from ..errors import HostOperationFailure

log = logger

T = TypeVar('T')


def apply_locked(
    host: HostClient,
    machine_name: str,
    mutation: Callable[[MachineSession], T],
    *,
    step: str = '',
    lock_type: LockType = LockType.WRITE,
) -> T:
    """Lock ``machine_name``, run ``mutation`` with the session, unlock.

    The lock is released exactly once whether or not the mutation raises.
    When both the mutation and the unlock fail, the mutation's error is the
    one propagated.
    """
    try:
        session = host.lock_machine(machine_name, lock_type)
    except HostOperationFailure as ex:
        _annotate(ex, machine_name, step)
        raise
    try:
        result = mutation(session)
    except HostOperationFailure as ex:
        _annotate(ex, machine_name, step)
        _unlock_after_failure(host, session)
        raise
    except BaseException:
        _unlock_after_failure(host, session)
        raise
    try:
        host.unlock_machine(session)
    except HostOperationFailure as ex:
        _annotate(ex, machine_name, step)
        raise
    return result


def _annotate(ex: HostOperationFailure, machine_name: str, step: str) -> None:
    if not ex.step:
        ex.step = step
    if not ex.machine:
        ex.machine = machine_name


def _unlock_after_failure(host: HostClient, session: MachineSession) -> None:
    try:
        host.unlock_machine(session)
    except Exception as ex:
        log.error(
            'Failed to unlock machine {} after a failed mutation: {}',
            session.machine_name,
            ex,
        )
