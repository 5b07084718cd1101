"""Classification of host error text.

VirtualBox has no dedicated "exists" call and reports several benign
conditions only through error messages. All matching against that wording
lives here so a change in the host's phrasing touches a single table.
"""

from __future__ import annotations

import enum
import re


class HostErrorKind(enum.Enum):
    MACHINE_NOT_FOUND = 'machine_not_found'
    CONTROLLER_EXISTS = 'controller_exists'
    MEDIUM_ALREADY_ATTACHED = 'medium_already_attached'
    MEDIUM_NOT_FOUND = 'medium_not_found'
    OTHER = 'other'


# Order matters only for messages matching several patterns; the first wins.
HOST_ERROR_PATTERNS: list[tuple[HostErrorKind, re.Pattern]] = [
    (
        HostErrorKind.MACHINE_NOT_FOUND,
        re.compile(
            r"Could not find a registered machine named '(?P<name>[^'\r\n]*)'"
        ),
    ),
    (
        HostErrorKind.MACHINE_NOT_FOUND,
        re.compile(
            r'VirtualBox error: Could not find a registered machine named '
            r'(?P<bare>[^\r\n]*?)(?:\s+\(0x[0-9a-fA-F]+\))?\s*$',
            re.MULTILINE,
        ),
    ),
    (
        HostErrorKind.CONTROLLER_EXISTS,
        re.compile(r"Storage controller named '[^'\r\n]*' already exists"),
    ),
    (
        HostErrorKind.CONTROLLER_EXISTS,
        re.compile(r'There is already a storage controller named'),
    ),
    (
        HostErrorKind.MEDIUM_ALREADY_ATTACHED,
        re.compile(r'is already attached to port \d+, device \d+'),
    ),
    (
        HostErrorKind.MEDIUM_NOT_FOUND,
        re.compile(r'Could not find file for the medium'),
    ),
]


def classify_host_error(message: str) -> HostErrorKind:
    text = str(message or '')
    for kind, pattern in HOST_ERROR_PATTERNS:
        if pattern.search(text):
            return kind
    return HostErrorKind.OTHER


def is_machine_not_found(message: str, name: str) -> bool:
    """True if ``message`` says that exactly ``name`` is not registered."""
    text = str(message or '')
    for kind, pattern in HOST_ERROR_PATTERNS:
        if kind is not HostErrorKind.MACHINE_NOT_FOUND:
            continue
        match = pattern.search(text)
        if match is None:
            continue
        groups = match.groupdict()
        if groups.get('name') is not None:
            # Quoted names are exact, trailing dots included.
            if groups['name'] == name:
                return True
            continue
        found = groups['bare'].strip()
        if found == name or (found.endswith('.') and found[:-1] == name):
            return True
    return False
