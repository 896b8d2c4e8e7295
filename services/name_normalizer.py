# order_files/services/name_normalizer.py

import re

SEARCH_KEY_LENGTH = 7

# Trailing variant suffix: PAP.0171.A01-2590-A-EB317.1 -> PAP.0171.A01-2590-A-EB317
_VARIANT_SUFFIX = re.compile(r"\.\d+$")

# Characters Windows rejects in a file name, plus control characters
INVALID_NAME_CHARS = frozenset('"<>|:*?\\/' + "".join(chr(i) for i in range(32)))
_WILDCARDS = frozenset("*?")


def strip_variant(item_code: str) -> str:
    if not item_code or not item_code.strip():
        return ""
    return _VARIANT_SUFFIX.sub("", item_code)


def normalize(item_code: str) -> str:
    """
    Search key for an item code: variant suffix removed, then the last
    SEARCH_KEY_LENGTH characters. Shorter codes are returned whole.
    """
    cleaned = strip_variant(item_code)
    if len(cleaned) >= SEARCH_KEY_LENGTH:
        return cleaned[-SEARCH_KEY_LENGTH:]
    return cleaned


def prefix(item_code: str) -> str:
    """
    Group key used to break ties between same-named files:
    "PAP.0171.A01-2590-A-EB317.1" -> "PAP.0171".
    """
    cleaned = strip_variant(item_code)
    if not cleaned:
        return ""
    parts = cleaned.split(".")
    if len(parts) >= 2:
        return f"{parts[0]}.{parts[1]}"
    return parts[0]


def sanitize_file_name(name: str) -> str:
    return "".join("_" if ch in INVALID_NAME_CHARS else ch for ch in (name or ""))


def sanitize_pattern(value: str) -> str:
    # keep wildcards, drop everything else a file name can't hold
    invalid = INVALID_NAME_CHARS - _WILDCARDS
    return "".join("_" if ch in invalid else ch for ch in (value or ""))
