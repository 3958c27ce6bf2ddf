"""Short, human-typeable codes that identify shared carts.

Codes are drawn from a 32-symbol alphabet without the glyphs people confuse
when reading a code aloud or typing it from a screenshot (I, O, 0 and 1).
They are stored and displayed uppercase; lookups accept any casing.
"""

from __future__ import annotations

import re
import secrets

from cartshare.core.config import settings

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = settings.SHORT_CODE_LENGTH

_CODE_PATTERN = re.compile(rf"^[{ALPHABET}]{{{CODE_LENGTH}}}$")


def generate_short_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalize_short_code(code: str) -> str:
    return code.strip().upper()


def is_valid_short_code(code: str) -> bool:
    """Return True when ``code`` (any casing) could have been issued by us."""
    return bool(_CODE_PATTERN.match(normalize_short_code(code)))
