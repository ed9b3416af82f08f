from __future__ import annotations

import re
from typing import List

_NON_WORD_RE = re.compile(r"[^\w']+")
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "`": "'"})


def normalize(text: str) -> str:
    return text.lower().translate(_APOSTROPHES)


def tokenize(text: str) -> List[str]:
    """Split review text into lowercase word tokens.

    Every character that is neither a word character nor an apostrophe acts
    as a separator. Apostrophes survive only inside a word, so ``don't``
    stays whole while quoting apostrophes are dropped.
    """
    tokens: List[str] = []
    for raw in _NON_WORD_RE.sub(" ", normalize(text)).split():
        token = raw.strip("'")
        if token:
            tokens.append(token)
    return tokens
