# valet_app/utils/identifiers.py
"""Record identifiers are UUID4 strings."""

import uuid

from valet_app.errors import InvalidArgument


def new_id() -> str:
    return str(uuid.uuid4())


def parse_id(value, label: str = "ID") -> str:
    """Normalise an incoming identifier. Raises InvalidArgument if malformed."""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        raise InvalidArgument(f"Invalid {label}")
