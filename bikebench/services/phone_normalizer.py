from __future__ import annotations

import re

from ..config import DEFAULT_COUNTRY_CODE, NATIONAL_NUMBER_LENGTH

_SEPARATOR_PATTERN = re.compile(r"[\s\-()]")


def normalize_phone(raw: str) -> str:
    """Canonical form used to decide whether two numbers belong to the same customer.

    Separators (whitespace, hyphens, parentheses) and a leading ``+`` are
    dropped, then a ``34`` country prefix is removed when the remainder is
    longer than a national number. Digit count is not validated.
    """
    cleaned = _SEPARATOR_PATTERN.sub("", raw or "").lstrip("+")
    if cleaned.startswith(DEFAULT_COUNTRY_CODE) and len(cleaned) > NATIONAL_NUMBER_LENGTH:
        cleaned = cleaned[len(DEFAULT_COUNTRY_CODE):]
    return cleaned


def same_customer(first: str, second: str) -> bool:
    return normalize_phone(first) == normalize_phone(second)


def international_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    prefix = "".join(ch for ch in country_code if ch.isdigit()) or DEFAULT_COUNTRY_CODE
    return f"{prefix}{normalize_phone(raw)}"
