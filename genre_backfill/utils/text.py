"""Text normalization for titles and artist names.

Everything here is pure and idempotent: the output of each function fed
back into it comes out unchanged.
"""

from __future__ import annotations

import re
import unicodedata

# ---------------------------------------------------------------------------
# Pre-compiled patterns
# ---------------------------------------------------------------------------

_MULTI_SPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)
_FEAT_BRACKETED = re.compile(
    r"\s*[\(\[]\s*(?:feat\.?|ft\.?|featuring)\s+[^\)\]]*[\)\]]",
    re.IGNORECASE,
)
_FEAT_TRAILING = re.compile(
    r"\s+(?:feat\.|ft\.|featuring)\s+.*$",
    re.IGNORECASE,
)

# UTF-8 bytes that were decoded as cp1252 / cp1250 and stored that way.
# The table covers the Polish letters seen in the catalogue.
MOJIBAKE_MAP: dict[str, str] = {
    "Ä…": "ą",
    "Ä‡": "ć",
    "Ä™": "ę",
    "Å‚": "ł",
    "Å„": "ń",
    "Ã³": "ó",
    "Å›": "ś",
    "Åº": "ź",
    "Å¼": "ż",
    "Ä„": "Ą",
    "Ä†": "Ć",
    "Ä\u0098": "Ę",
    "Å\u0081": "Ł",
    "Åƒ": "Ń",
    "Ã“": "Ó",
    "Åš": "Ś",
    "Å¹": "Ź",
    "Å»": "Ż",
    "Ĺ‚": "ł",
    "Ĺ\u0082": "ł",
    "Ĺ\u009b": "ś",
    "Ĺ\u0084": "ń",
    "Ĺ¼": "ż",
    "Ĺş": "ź",
}

# Letters with a stroke or ligature have no NFD decomposition.
_TRANSLITERATE = str.maketrans(
    {
        "ł": "l",
        "Ł": "L",
        "đ": "d",
        "Đ": "D",
        "ø": "o",
        "Ø": "O",
        "ħ": "h",
        "Ħ": "H",
        "ı": "i",
        "ß": "ss",
        "æ": "ae",
        "Æ": "AE",
        "œ": "oe",
        "Œ": "OE",
        "þ": "th",
        "Þ": "TH",
    }
)


# ---------------------------------------------------------------------------
# Repair and accent stripping
# ---------------------------------------------------------------------------


def repair_mojibake(text: str | None) -> str:
    """Replace known mis-decoded byte sequences with the intended character."""
    out = str(text or "")
    for bad, good in MOJIBAKE_MAP.items():
        if bad in out:
            out = out.replace(bad, good)
    return out


def remove_diacritics(text: str | None) -> str:
    """Strip accents while keeping case and non-Latin scripts.

    Used to build an ASCII fallback query next to the native one, so
    ``"Łódź"`` becomes ``"Lodz"`` rather than disappearing.
    """
    decomposed = unicodedata.normalize("NFD", repair_mojibake(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return unicodedata.normalize("NFC", stripped.translate(_TRANSLITERATE))


def strip_featuring(text: str | None) -> str:
    """Remove "feat." / "ft." / "featuring" credits from a title or artist."""
    s = _FEAT_BRACKETED.sub("", str(text or ""))
    s = _FEAT_TRAILING.sub("", s)
    return s.strip()


# ---------------------------------------------------------------------------
# Comparison key
# ---------------------------------------------------------------------------


def normalize_for_comparison(text: str | None) -> str:
    """Lowercase, strip accents, turn punctuation into spaces, collapse whitespace."""
    s = remove_diacritics(repair_mojibake(text).lower())
    s = _NON_ALNUM.sub(" ", s)
    return _MULTI_SPACE.sub(" ", s).strip()
