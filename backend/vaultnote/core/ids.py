# vaultnote/core/ids.py

import re
import secrets

TOKEN_BYTES = 16  # 128 bits
TOKEN_LENGTH = TOKEN_BYTES * 2

_TOKEN_RE = re.compile(r"^[0-9a-f]{%d}$" % TOKEN_LENGTH)


def new_id() -> str:
    """Fresh retrieval token: 32 lowercase hex chars from the OS CSPRNG"""
    return secrets.token_hex(TOKEN_BYTES)


def is_valid_id(token) -> bool:
    return isinstance(token, str) and _TOKEN_RE.match(token) is not None


def token_prefix(token: str) -> str:
    """Short form safe to put in logs."""
    return f"{token[:8]}..." if token else "<empty>"
