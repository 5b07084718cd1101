"""Existence probe: is a machine name already registered on the host?"""

from __future__ import annotations

from loguru import logger

from ..classify import is_machine_not_found
from ..client import HostClient
from ..errors import HostOperationFailure

log = logger


def machine_exists(host: HostClient, name: str) -> bool:
    """Look ``name`` up on the host.

    Returns False only when the host says it has no machine by exactly that
    name. Any other lookup failure is re-raised as is.
    """
    try:
        host.find_machine(name)
    except HostOperationFailure as ex:
        if is_machine_not_found(ex.message, name):
            log.debug('No registered machine named {}', name)
            return False
        raise
    log.debug('Machine {} is registered', name)
    return True
