"""
Cache-key convention: every filter dimension is part of the key.
Why: a key without its scope serves one group's rows to another group.
"""

import re
from typing import List, Optional, Union

ScopeValue = Optional[Union[str, int]]

# Rendered for a None scope value; "~" never survives _escape.
UNSCOPED = "~"

# Separators, the None marker, glob metacharacters and the escape itself.
_RESERVED = re.compile(r"[%_\-~*?\[\]\s]")


def _escape(value: object) -> str:
    return _RESERVED.sub(lambda m: f"%{ord(m.group()):02X}", str(value))


def make_key(domain: str, **scope: ScopeValue) -> str:
    """Build ``<domain>`` or ``<domain>_<name>-<value>_...`` with names sorted.

    Values are percent-escaped so they cannot forge a separator, and ``None``
    renders as ``~`` so "every group" never shares a key with any real value.

    >>> make_key("courses", group_id=7)
    'courses_group_id-7'
    >>> make_key("groups", degree_id=None)
    'groups_degree_id-~'
    >>> make_key("groups", degree_id="all")
    'groups_degree_id-all'
    """
    if not domain or domain != domain.strip() or " " in domain:
        raise ValueError(f"invalid cache domain: {domain!r}")
    parts = [domain]
    for name in sorted(scope):
        value = scope[name]
        parts.append(f"{name}-{UNSCOPED if value is None else _escape(value)}")
    return "_".join(parts)


def domain_patterns(domain: str) -> List[str]:
    """Exact key plus glob for every scoped variant of ``domain``."""
    return [domain, f"{domain}_*"]
