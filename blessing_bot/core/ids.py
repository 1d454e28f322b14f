from __future__ import annotations

import secrets


def generate_filename(prefix: str, suffix: str) -> str:
    token = secrets.token_hex(4)
    return f"{prefix}_{token}.{suffix}"
