"""
Composite ``owner/name`` identifiers.
"""
from typing import Tuple


SEPARATOR = "/"


class InvalidIdentifierError(ValueError):
    """Identifier is not of the form ``owner/name``."""


def format_id(owner: str, name: str) -> str:
    return f"{owner}{SEPARATOR}{name}"


def parse_id(identifier: str) -> Tuple[str, str]:
    """
    Split ``owner/name`` into its two parts.

    Raises:
        InvalidIdentifierError: if the identifier does not have exactly one
            separator or either part is empty.
    """
    parts = identifier.split(SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidIdentifierError(f"{identifier!r} is not an owner/name identifier")
    return parts[0], parts[1]


def parse_id_no_check(identifier: str) -> Tuple[str, str]:
    """Split on the first separator; an identifier without one has no owner."""
    owner, sep, name = identifier.partition(SEPARATOR)
    if not sep:
        return "", identifier
    return owner, name
