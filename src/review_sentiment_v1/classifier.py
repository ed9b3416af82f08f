from __future__ import annotations

from typing import Sequence, Tuple

from .models import SentimentLabel

CLASSIFICATION_THRESHOLD = 0.5
SCORE_PRECISION = 4


def classify(
    positive_score: float,
    negative_score: float,
    neutral_count: int,
    negations: Sequence[str],
) -> Tuple[SentimentLabel, str]:
    # compared at the precision the scores are reported with
    diff = round(positive_score - negative_score, SCORE_PRECISION)

    if diff > CLASSIFICATION_THRESHOLD:
        explanation = (
            f"Positive sentiment detected (positive score {positive_score:.1f} "
            f"vs negative score {negative_score:.1f})."
        )
        return "positive", explanation + _negation_suffix(negations)

    if diff < -CLASSIFICATION_THRESHOLD:
        explanation = (
            f"Negative sentiment detected (negative score {negative_score:.1f} "
            f"vs positive score {positive_score:.1f})."
        )
        return "negative", explanation + _negation_suffix(negations)

    if neutral_count > 0:
        explanation = (
            f"Neutral sentiment: balanced scores (positive {positive_score:.1f}, "
            f"negative {negative_score:.1f}) with {neutral_count} neutral word(s)."
        )
    elif negations:
        explanation = (
            f"Neutral sentiment: negations balanced the overall tone ({', '.join(negations)}); "
            f"positive {positive_score:.1f}, negative {negative_score:.1f}."
        )
    else:
        explanation = (
            f"Neutral sentiment: balanced scores (positive {positive_score:.1f}, "
            f"negative {negative_score:.1f})."
        )
    return "neutral", explanation


def _negation_suffix(negations: Sequence[str]) -> str:
    if not negations:
        return ""
    return f" {len(negations)} negation(s) detected: {', '.join(negations)}."
