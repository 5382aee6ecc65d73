from __future__ import annotations

import re
from typing import Optional

import pycountry

from .errors import ConfigurationError

# Codes that stand for "no particular language" and are passed through as-is
UNSPECIFIED_LANGUAGES = {"x-unspecified", "und", "mul", "zxx"}

_LANGUAGE_CODE = re.compile(r"^[A-Za-z]{2,3}$")


def lookup_language(code: str):
    """Return the pycountry language record for an ISO 639 code or name, if any."""
    try:
        return pycountry.languages.lookup(code)
    except LookupError:
        return None


def normalize_language(code: Optional[str]) -> str:
    """
    Normalize a language identifier to its shortest ISO 639 code.

    Region or script subtags (``pt-BR``, ``sr_Latn``) are dropped for the
    lookup. Unknown identifiers are a configuration error.
    """
    if not code or not code.strip():
        raise ConfigurationError("A language identifier is required (use --lang)")
    value = code.strip()
    if value.lower() in UNSPECIFIED_LANGUAGES:
        return value.lower()

    primary = re.split(r"[-_]", value, maxsplit=1)[0]
    lang = lookup_language(primary) if _LANGUAGE_CODE.match(primary) else lookup_language(value)
    if lang is None:
        raise ConfigurationError(f"Unknown language identifier '{code}'")
    return getattr(lang, "alpha_2", None) or lang.alpha_3
