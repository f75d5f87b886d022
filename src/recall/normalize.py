from __future__ import annotations
import re
import unicodedata

# typographic quotes from mobile keyboards
_QUOTES = str.maketrans({"\u2019": "'", "\u2018": "'", "\u201c": '"', "\u201d": '"'})
_WS_RE = re.compile(r"\s+")

_TRUE_TOKENS = {"true", "t", "yes", "y", "đúng", "dung"}
_FALSE_TOKENS = {"false", "f", "no", "n", "sai"}

def _fold(s: str) -> str:
    return unicodedata.normalize("NFKC", s or "").translate(_QUOTES)

def norm_text(s: str) -> str:
    """NFKC, straight quotes, single spaces, trimmed."""
    return _WS_RE.sub(" ", _fold(s)).strip()

def norm_cmp_text(s: str) -> str:
    return norm_text(s).casefold()

def is_blank(s: str | None) -> bool:
    return not norm_text(s or "")

def norm_bool_token(s: str) -> bool | None:
    key = norm_cmp_text(s)
    while key and key[-1] in ".!":
        key = key[:-1]
    if key in _TRUE_TOKENS:
        return True
    if key in _FALSE_TOKENS:
        return False
    return None

def split_pairs(s: str) -> set[tuple[str, str]] | None:
    """Parse ``left:right|left:right`` into a set of normalized pairs.

    Newlines and ``;`` are accepted as pair separators. Returns None when any
    non-empty chunk is not a ``left:right`` pair.
    """
    raw = _fold(s).replace("\n", "|").replace(";", "|")
    pairs: set[tuple[str, str]] = set()
    for chunk in raw.split("|"):
        chunk = chunk.strip()
        if not chunk:
            continue
        left, sep, right = chunk.partition(":")
        if not sep or not left.strip() or not right.strip():
            return None
        pairs.add((norm_cmp_text(left), norm_cmp_text(right)))
    return pairs
