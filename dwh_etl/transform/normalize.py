"""
Field-level cleansing shared by the entity transforms.

Every categorical mapping is a fixed table. Lookups trim and upper-case the
input first; unmapped or blank input maps to an explicit sentinel.
"""

from datetime import date, datetime
from typing import Any

UNKNOWN = "Unknown"
NOT_AVAILABLE = "n/a"

# Earliest plausible birth date; anything before is treated as bad data.
MIN_BIRTH_DATE = date(1926, 1, 1)

DATE_TOKEN_LENGTH = 8

MARITAL_STATUS_CODES = {
    "S": "Single",
    "M": "Married",
}

GENDER_CODES = {
    "F": "Female",
    "FEMALE": "Female",
    "M": "Male",
    "MALE": "Male",
}

PRODUCT_LINE_CODES = {
    "M": "Mountain",
    "R": "Road",
    "S": "Other sales",
    "T": "Touring",
}

COUNTRY_CODES = {
    "DE": "Germany",
    "US": "United States",
    "USA": "United States",
}


def clean_text(value: str | None) -> str | None:
    """Trim whitespace; blank strings become None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_code(value: str | None, mapping: dict[str, str], default: str = UNKNOWN) -> str:
    """
    Map a raw code through a fixed table.

    Args:
        value: Raw code as extracted (any case, may be padded or None)
        mapping: Upper-case code -> normalized label
        default: Sentinel for blank or unmapped input

    Returns:
        The mapped label, or default. Never None.
    """
    key = clean_text(value)
    if key is None:
        return default
    return mapping.get(key.upper(), default)


def normalize_marital_status(value: str | None) -> str:
    return normalize_code(value, MARITAL_STATUS_CODES)


def normalize_gender(value: str | None) -> str:
    return normalize_code(value, GENDER_CODES)


def normalize_product_line(value: str | None) -> str:
    return normalize_code(value, PRODUCT_LINE_CODES)


def normalize_country(value: str | None) -> str:
    """
    Expand country codes; unknown non-blank values pass through trimmed.
    """
    country = clean_text(value)
    if country is None:
        return NOT_AVAILABLE
    return COUNTRY_CODES.get(country.upper(), country)


def parse_date_token(token: Any) -> date | None:
    """
    Parse a raw YYYYMMDD token.

    A token is valid only if its text form is exactly eight characters and
    names a real calendar date; anything else (0, short or long tokens,
    non-digits, 20241399) becomes None.
    """
    if token is None or isinstance(token, bool):
        return None
    text = str(token)
    if len(text) != DATE_TOKEN_LENGTH or not text.isdigit():
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def sanitize_birth_date(value: date | None, as_of: date | None = None) -> date | None:
    """Keep a birth date only within [MIN_BIRTH_DATE, as_of]; as_of defaults to today."""
    if value is None:
        return None
    upper = as_of or date.today()
    if value < MIN_BIRTH_DATE or value > upper:
        return None
    return value
