from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .lexicon import Lexicon

NEGATION_WINDOW = 2
INTENSIFIER_MULTIPLIER = 1.5
NEUTRAL_WEIGHT = 0.5


@dataclass
class WordScores:
    """Running totals for one analysis call. Values only ever grow."""

    positive_score: float = 0.0
    negative_score: float = 0.0
    neutral_score: float = 0.0
    positive_count: int = 0
    negative_count: int = 0
    neutral_count: int = 0
    positive_evidence: List[str] = field(default_factory=list)
    negative_evidence: List[str] = field(default_factory=list)
    neutral_evidence: List[str] = field(default_factory=list)
    negations: List[str] = field(default_factory=list)

    def add_positive(self, evidence: str, weight: float) -> None:
        self.positive_score += weight
        self.positive_count += 1
        self.positive_evidence.append(evidence)

    def add_negative(self, evidence: str, weight: float) -> None:
        self.negative_score += weight
        self.negative_count += 1
        self.negative_evidence.append(evidence)


def is_negated(tokens: Sequence[str], index: int, lexicon: Lexicon) -> bool:
    start = max(0, index - NEGATION_WINDOW)
    return any(token in lexicon.negation_words for token in tokens[start:index])


def has_intensifier(tokens: Sequence[str], index: int, lexicon: Lexicon) -> bool:
    return index > 0 and tokens[index - 1] in lexicon.intensifier_words


def score_words(tokens: Sequence[str], lexicon: Lexicon) -> WordScores:
    """Score lexicon hits with a short look-back for negation and intensifiers.

    A negation in either of the two preceding tokens flips a polar word, and
    the flipped evidence is reported as ``"not <word>"``. An intensifier
    directly before a word scales its weight by 1.5. Negated neutral words
    are still listed as evidence but add nothing to the score.
    """
    scores = WordScores()

    for index, token in enumerate(tokens):
        category = lexicon.category_of(token)
        if category is None:
            continue

        negated = is_negated(tokens, index, lexicon)
        weight = INTENSIFIER_MULTIPLIER if has_intensifier(tokens, index, lexicon) else 1.0

        if category == "neutral":
            scores.neutral_evidence.append(token)
            if not negated:
                scores.neutral_score += NEUTRAL_WEIGHT
                scores.neutral_count += 1
            continue

        if not negated:
            if category == "positive":
                scores.add_positive(token, weight)
            else:
                scores.add_negative(token, weight)
            continue

        flipped = f"not {token}"
        scores.negations.append(flipped)
        if category == "positive":
            scores.add_negative(flipped, weight)
        else:
            scores.add_positive(flipped, weight)

    return scores
