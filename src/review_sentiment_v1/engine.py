from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .classifier import SCORE_PRECISION, classify
from .lexicon import DEFAULT_LEXICON, Lexicon
from .models import SentimentAnalyzerInput, SentimentResult
from .phrases import score_phrases
from .scoring import score_words
from .tokenizer import normalize, tokenize

logger = logging.getLogger("review_sentiment_v1.engine")


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


class SentimentAnalyzerEngine:
    def __init__(self, lexicon: Optional[Lexicon] = None) -> None:
        self._lexicon = lexicon or DEFAULT_LEXICON

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    async def run(self, payload: SentimentAnalyzerInput) -> SentimentResult:
        return self.analyze(payload.review_text)

    def analyze(self, text: str) -> SentimentResult:
        words = score_words(tokenize(text), self._lexicon)
        bonus = score_phrases(normalize(text), self._lexicon)

        positive_score = round(words.positive_score + bonus.positive, SCORE_PRECISION)
        negative_score = round(words.negative_score + bonus.negative, SCORE_PRECISION)
        negations = _unique(words.negations)

        label, explanation = classify(positive_score, negative_score, words.neutral_count, negations)

        logger.debug(
            "classified label=%s positive=%.2f negative=%.2f neutral=%.2f phrases=%d",
            label,
            positive_score,
            negative_score,
            words.neutral_score,
            len(bonus.matched),
        )

        return SentimentResult(
            label=label,
            positive_words=_unique(words.positive_evidence),
            negative_words=_unique(words.negative_evidence),
            neutral_words=_unique(words.neutral_evidence),
            positive_count=words.positive_count,
            negative_count=words.negative_count,
            neutral_count=words.neutral_count,
            negations_detected=negations,
            phrases_matched=bonus.matched,
            positive_score=positive_score,
            negative_score=negative_score,
            neutral_score=round(words.neutral_score, SCORE_PRECISION),
            explanation=explanation,
        )


_default_engine = SentimentAnalyzerEngine()


def analyze(text: str) -> SentimentResult:
    return _default_engine.analyze(text)
