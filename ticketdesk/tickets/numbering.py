from __future__ import annotations

import secrets
import string
from datetime import datetime

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LENGTH = 3


def generate_ticket_number(now: datetime, *, prefix: str = "TKT") -> str:
    """Return ``<prefix>-<8 digit time component>-<3 random characters>``.

    The number is only probably unique; the unique constraint on
    ``tickets.ticket_number`` is the authority and callers retry on collision.
    """

    stamp = int(now.timestamp() * 1000) % 100_000_000
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}-{stamp:08d}-{suffix}"
