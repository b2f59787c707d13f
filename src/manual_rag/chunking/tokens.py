"""Approximate token counting for mixed CJK/Latin text."""

from __future__ import annotations

import math
import re

# Hangul jamo, kana, CJK ideographs (incl. extension A), Hangul compatibility jamo and syllables
_CJK = re.compile(r"[\u1100-\u11ff\u3040-\u30ff\u3130-\u318f\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
_LATIN = re.compile(r"[A-Za-z0-9]")

CJK_CHARS_PER_TOKEN = 1.5
LATIN_CHARS_PER_TOKEN = 4.0
OTHER_CHARS_PER_TOKEN = 2.0


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` without a tokenizer.

    CJK characters are ~1.5 chars/token, ASCII letters and digits ~4 chars/token,
    and everything else (whitespace, punctuation, other scripts) ~2 chars/token.
    """
    if not text:
        return 0
    cjk = len(_CJK.findall(text))
    latin = len(_LATIN.findall(text))
    other = len(text) - cjk - latin
    return math.ceil(
        cjk / CJK_CHARS_PER_TOKEN
        + latin / LATIN_CHARS_PER_TOKEN
        + other / OTHER_CHARS_PER_TOKEN
    )
