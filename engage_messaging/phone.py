"""Phone number formatting for provider addressing."""

from __future__ import annotations

import re

WHATSAPP_PREFIX = "whatsapp:"


def normalize_phone(phone: str | None, default_country_code: str = "1") -> str | None:
    """Normalize a phone number to E.164 format.

    Numbers without a leading ``+`` and exactly 10 digits are treated as
    national numbers of ``default_country_code``.

    Returns:
        Normalized E.164 format or None if invalid
    """
    if not phone:
        return None

    _, candidate = _split_whatsapp_prefix(phone.strip())
    candidate = candidate.strip()
    if not candidate:
        return None

    digits = re.sub(r"\D", "", candidate)
    if not digits:
        return None

    if candidate.startswith("+"):
        return f"+{digits}" if 8 <= len(digits) <= 15 else None

    if len(digits) == 10:
        return f"+{default_country_code}{digits}"

    if 11 <= len(digits) <= 15:
        return f"+{digits}"

    return None


def format_whatsapp_number(number: str | None, default_country_code: str = "1") -> str | None:
    """Normalize a phone number to the ``whatsapp:+E.164`` format.

    Args:
        number: The raw phone number which may include punctuation or a ``whatsapp:`` prefix.

    Returns:
        The number formatted as ``whatsapp:+E.164`` or ``None`` if it is not a phone number.
    """
    normalized = normalize_phone(number, default_country_code)
    if normalized is None:
        return None
    return f"{WHATSAPP_PREFIX}{normalized}"


def _split_whatsapp_prefix(value: str) -> tuple[str, str]:
    """Split a WhatsApp prefix while preserving canonical lowercase form."""
    if value.lower().startswith(WHATSAPP_PREFIX):
        return WHATSAPP_PREFIX, value[len(WHATSAPP_PREFIX):]
    return "", value
