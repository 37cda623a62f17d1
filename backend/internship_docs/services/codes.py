"""Verification code generation and normalization.

A verification code is a bearer capability: whoever holds it can read the
public authenticity fields of one document. Codes are therefore drawn from
``secrets`` and never derived from timestamps or counters.
"""

import secrets

CODE_LENGTH = 16

# 32 symbols: uppercase letters and digits minus 0/O and 1/I, which are
# easily confused when a code is read off paper. 32**16 ~ 1.2e24 codes.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_verification_code() -> str:
    """Return a fresh, uniformly random 16-character code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(raw: str) -> str:
    """Uppercase and drop all whitespace, so ``"abcd efgh ..."`` matches."""
    return "".join((raw or "").split()).upper()


def is_well_formed(code: str) -> bool:
    """Cheap shape check done before any lookup."""
    return len(code) == CODE_LENGTH and code.isascii() and code.isalnum()
