"""Task identifier helpers.

Three kinds of task reference reach the API:

    exact row id      2f565bf9-70c7-5c41-93e7-c6c4cde32312
    compound id       2f565bf9-70c7-5c41-93e7-c6c4cde32312-dfd5e65a   (legacy)
    template id       1.1-identification                             (canonical item)

``normalize_task_id`` is a client convenience for building request paths.
The server never trusts it and resolves identity itself.
"""

import re

_UUID_SEGMENTS = 5
# Positions of hyphens in the 8-4-4-4-12 layout.
_UUID_SHAPE = "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
_HEX = frozenset("0123456789abcdef")
# One full hex group before a prefix lookup is allowed.
MIN_PARTIAL_UUID_LENGTH = 8

_TEMPLATE_ID_RE = re.compile(
    r"^\d+(\.\d+)*-(identification|definition|delivery|closure)(-\d+)?$",
    re.IGNORECASE,
)


def normalize_task_id(raw_id: str) -> str:
    """Reduce a possibly compound id to its first five hyphen-delimited segments.

    Strings with fewer than five segments are returned unchanged, even when
    they are not UUID-shaped.

    >>> normalize_task_id("2f565bf9-70c7-5c41-93e7-c6c4cde32312-dfd5e65a")
    '2f565bf9-70c7-5c41-93e7-c6c4cde32312'
    >>> normalize_task_id("1.1-identification")
    '1.1-identification'
    """
    if not raw_id:
        return raw_id
    parts = raw_id.split("-")
    if len(parts) >= _UUID_SEGMENTS:
        return "-".join(parts[:_UUID_SEGMENTS])
    return raw_id


def is_partial_uuid(value: str) -> bool:
    """True when ``value`` is a leading slice of a UUID at least one hex group long."""
    if not value or len(value) < MIN_PARTIAL_UUID_LENGTH or len(value) > len(_UUID_SHAPE):
        return False
    for char, slot in zip(value.lower(), _UUID_SHAPE):
        if slot == "-":
            if char != "-":
                return False
        elif char not in _HEX:
            return False
    return True


def looks_like_template_id(value: str) -> bool:
    """True when ``value`` has the shape of a canonical template item id."""
    return bool(value) and bool(_TEMPLATE_ID_RE.match(value))
