"""Text preprocessing for BM25 keyword search."""

from __future__ import annotations

import re

from manual_rag.config.constants import STOPWORDS

_PUNCT = re.compile(r"[^\w\s]")
_CJK_CHAR = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, drop stopwords and single Latin characters.

    A single CJK character is kept: it is often a whole word.
    """
    tokens = _PUNCT.sub(" ", text.lower()).split()
    return [
        t
        for t in tokens
        if t not in STOPWORDS and (len(t) > 1 or _CJK_CHAR.match(t))
    ]
