from __future__ import annotations

import re

LABEL_PREFIX = "req"

_UNSAFE = re.compile(r"[^a-z0-9_-]")


def derive_label(identifier: str, prefix: str = LABEL_PREFIX) -> str:
    """Upstream-safe label tagging a ticket with the person who requested it.

    ``"User.Name+tag@Example.COM"`` -> ``"req-user-name-tag-example-com"``.
    A tagging convention, not an identity: distinct inputs may collide.
    """
    sanitized = _UNSAFE.sub("-", (identifier or "").lower())
    return f"{prefix}-{sanitized}"
