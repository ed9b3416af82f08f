from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Pattern

from .lexicon import Lexicon


@dataclass
class PhraseBonus:
    positive: float = 0.0
    negative: float = 0.0
    matched: List[str] = field(default_factory=list)


@lru_cache(maxsize=1024)
def _compile(phrase: str) -> Pattern[str]:
    return re.compile(r"(?<![\w'])" + re.escape(phrase) + r"(?![\w'])")


def count_phrase(text: str, phrase: str) -> int:
    return len(_compile(phrase).findall(text))


def score_phrases(text: str, lexicon: Lexicon) -> PhraseBonus:
    """Add the signed weight of every phrase pattern found in ``text``.

    ``text`` is the lowercased review, not its tokens. Matches are literal,
    non-overlapping and must not start or end inside a word. Phrase bonuses
    are independent of word-level hits over the same span.
    """
    bonus = PhraseBonus()

    for item in lexicon.phrase_patterns:
        matches = count_phrase(text, item.pattern)
        if not matches:
            continue
        bonus.matched.append(item.pattern)
        if item.weight > 0:
            bonus.positive += matches * abs(item.weight)
        elif item.weight < 0:
            bonus.negative += matches * abs(item.weight)

    return bonus
