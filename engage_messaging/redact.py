"""PII redaction for diagnostic output."""

from __future__ import annotations

MASK = "***"


def redact_pii(pii: str | None) -> str | None:
    """Mask a PII string before it reaches logs.

    Strings of 8 characters or fewer are fully masked; longer ones keep
    their first and last 3 characters.
    """
    if not pii:
        return pii
    if len(pii) <= 8:
        return MASK
    return f"{pii[:3]}{MASK}{pii[-3:]}"
