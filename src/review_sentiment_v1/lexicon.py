"""Word and phrase lexicon used by the rule-based review scorer.

The lexicon is plain data: five categorized word sets plus an ordered list
of multi-word phrase patterns with signed weights. It is built once per
process and never mutated, so a single instance is shared by every
analysis call.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Literal, NamedTuple, Tuple, Union

Polarity = Literal["positive", "negative", "neutral"]

PHRASE_WEIGHT = 0.5
SOFT_PHRASE_WEIGHT = 0.3

# same shape as the tokens the tokenizer emits
_WORD_RE = re.compile(r"\w+(?:'\w+)*")


class LexiconError(ValueError):
    pass


class PhrasePattern(NamedTuple):
    pattern: str
    polarity: Polarity
    weight: float


POSITIVE_WORDS = frozenset(
    {
        "amazing", "awesome", "excellent", "fantastic", "great", "good", "wonderful",
        "brilliant", "superb", "outstanding", "masterpiece", "masterful", "beautiful",
        "beautifully", "stunning", "captivating", "compelling", "engaging", "entertaining",
        "enjoyable", "enjoyed", "enjoy", "love", "loved", "loves", "lovely", "fun",
        "funny", "hilarious", "charming", "delightful", "gripping", "thrilling", "moving",
        "touching", "heartwarming", "powerful", "impressive", "memorable", "perfect",
        "perfectly", "best", "favorite", "favourite", "recommend", "recommended",
        "riveting", "clever", "witty", "smart", "fresh", "original", "innovative",
        "spectacular", "breathtaking", "phenomenal", "incredible", "terrific", "marvelous",
        "magnificent", "exceptional", "solid", "nice", "pleasant", "satisfying",
        "worthwhile", "gem", "classic", "epic", "flawless", "wow", "inspiring", "uplifting",
        "authentic", "believable", "stellar", "sublime", "refreshing", "beloved",
        "excited", "exciting", "happy", "glad", "superior",
    }
)

NEGATIVE_WORDS = frozenset(
    {
        "awful", "terrible", "horrible", "bad", "worse", "worst", "boring", "bored", "dull",
        "tedious", "slow", "predictable", "disappointing", "disappointed", "disappointment",
        "mediocre", "poor", "poorly", "weak", "lame", "stupid", "dumb", "silly", "pointless",
        "mess", "messy", "confusing", "confused", "awkward", "cringe", "cringeworthy",
        "forgettable", "overrated", "overlong", "bland", "lifeless", "waste", "wasted",
        "hate", "hated", "dislike", "disliked", "annoying", "painful", "unwatchable",
        "garbage", "trash", "rubbish", "disaster", "failure", "fails", "failed", "flop",
        "cheesy", "cliche", "cliched", "clichéd", "shallow", "nonsense", "unfunny",
        "uninspired", "incoherent", "sloppy", "pathetic", "dreadful", "atrocious",
        "laughable", "ugly", "unbearable", "horrendous", "sucks", "sucked", "regret",
        "underwhelming", "unconvincing", "wooden", "forced", "hollow", "frustrating",
    }
)

NEUTRAL_WORDS = frozenset(
    {
        "okay", "ok", "average", "fine", "alright", "mixed", "moderate", "standard",
        "typical", "ordinary", "acceptable", "fair", "passable", "decent", "adequate",
        "conventional", "watchable", "serviceable", "middling", "unremarkable",
    }
)

NEGATION_WORDS = frozenset(
    {
        "not", "no", "never", "neither", "nor", "none", "nobody", "nothing", "nowhere",
        "hardly", "barely", "scarcely", "without", "cannot", "isn't", "wasn't", "aren't",
        "weren't", "don't", "doesn't", "didn't", "can't", "couldn't", "won't", "wouldn't",
        "shouldn't", "hasn't", "haven't", "hadn't", "ain't", "isnt", "wasnt", "dont",
        "doesnt", "didnt", "cant", "couldnt", "wont", "wouldnt",
    }
)

INTENSIFIER_WORDS = frozenset(
    {
        "very", "really", "extremely", "incredibly", "absolutely", "totally", "completely",
        "truly", "highly", "so", "super", "remarkably", "exceptionally", "utterly",
        "thoroughly", "deeply", "genuinely", "especially", "particularly", "insanely",
        "ridiculously", "quite", "too", "most", "seriously", "unbelievably", "painfully",
    }
)

POSITIVE_PHRASES: Tuple[str, ...] = (
    "must see",
    "must-see",
    "must watch",
    "highly recommend",
    "edge of my seat",
    "edge of your seat",
    "blown away",
    "well worth",
    "worth watching",
    "worth every penny",
    "well done",
    "well made",
    "well acted",
    "well written",
    "top notch",
    "top-notch",
    "loved every minute",
    "instant classic",
    "tour de force",
    "two thumbs up",
    "five stars",
    "hats off",
)

NEGATIVE_PHRASES: Tuple[str, ...] = (
    "waste of time",
    "waste of money",
    "fell asleep",
    "fall asleep",
    "not worth",
    "don't bother",
    "do not watch",
    "save your money",
    "walked out",
    "thumbs down",
    "falls flat",
    "fell flat",
    "poorly written",
    "poorly acted",
    "made no sense",
    "makes no sense",
    "dragged on",
    "drags on",
    "could have been better",
)

CONDITIONAL_PHRASES: Tuple[Tuple[str, float], ...] = (
    ("not bad", SOFT_PHRASE_WEIGHT),
    ("not too bad", SOFT_PHRASE_WEIGHT),
    ("not the worst", SOFT_PHRASE_WEIGHT),
    ("could be worse", SOFT_PHRASE_WEIGHT),
    ("better than expected", SOFT_PHRASE_WEIGHT),
    ("had its moments", SOFT_PHRASE_WEIGHT),
    ("not great", -SOFT_PHRASE_WEIGHT),
    ("not that good", -SOFT_PHRASE_WEIGHT),
    ("not the best", -SOFT_PHRASE_WEIGHT),
    ("nothing special", -SOFT_PHRASE_WEIGHT),
    ("nothing new", -SOFT_PHRASE_WEIGHT),
    ("worse than expected", -SOFT_PHRASE_WEIGHT),
    ("mixed feelings", 0.0),
    ("it was okay", 0.0),
    ("so-so", 0.0),
)


def _polarity_for(weight: float) -> Polarity:
    if weight > 0:
        return "positive"
    if weight < 0:
        return "negative"
    return "neutral"


def build_phrase_patterns(
    positive: Iterable[str] = POSITIVE_PHRASES,
    negative: Iterable[str] = NEGATIVE_PHRASES,
    conditional: Iterable[Tuple[str, float]] = CONDITIONAL_PHRASES,
) -> Tuple[PhrasePattern, ...]:
    patterns = [PhrasePattern(phrase, "positive", PHRASE_WEIGHT) for phrase in positive]
    patterns.extend(PhrasePattern(phrase, "negative", -PHRASE_WEIGHT) for phrase in negative)
    patterns.extend(PhrasePattern(phrase, _polarity_for(weight), weight) for phrase, weight in conditional)
    return tuple(patterns)


@dataclass(frozen=True)
class Lexicon:
    positive_words: FrozenSet[str] = POSITIVE_WORDS
    negative_words: FrozenSet[str] = NEGATIVE_WORDS
    neutral_words: FrozenSet[str] = NEUTRAL_WORDS
    negation_words: FrozenSet[str] = NEGATION_WORDS
    intensifier_words: FrozenSet[str] = INTENSIFIER_WORDS
    phrase_patterns: Tuple[PhrasePattern, ...] = field(default_factory=build_phrase_patterns)

    def __post_init__(self) -> None:
        for name in ("positive_words", "negative_words", "neutral_words", "negation_words", "intensifier_words"):
            words = frozenset(getattr(self, name))
            if not words:
                raise LexiconError(f"{name} must not be empty")
            for word in words:
                if not isinstance(word, str) or word != word.lower() or not _WORD_RE.fullmatch(word):
                    raise LexiconError(f"{name} contains an invalid entry: {word!r}")
            object.__setattr__(self, name, words)

        overlap = (
            (self.positive_words & self.negative_words)
            | (self.positive_words & self.neutral_words)
            | (self.negative_words & self.neutral_words)
        )
        if overlap:
            raise LexiconError(f"words appear in more than one polarity set: {sorted(overlap)}")

        patterns = tuple(PhrasePattern(*item) for item in self.phrase_patterns)
        for item in patterns:
            if not item.pattern or item.pattern != item.pattern.strip().lower():
                raise LexiconError(f"invalid phrase pattern: {item.pattern!r}")
            if item.polarity != _polarity_for(item.weight):
                raise LexiconError(f"phrase {item.pattern!r} has polarity {item.polarity} but weight {item.weight}")
        object.__setattr__(self, "phrase_patterns", patterns)

    def category_of(self, word: str) -> Union[Polarity, None]:
        if word in self.positive_words:
            return "positive"
        if word in self.negative_words:
            return "negative"
        if word in self.neutral_words:
            return "neutral"
        return None


DEFAULT_LEXICON = Lexicon()

_FILE_KEYS = {
    "positive": "positive_words",
    "negative": "negative_words",
    "neutral": "neutral_words",
    "negation": "negation_words",
    "intensifier": "intensifier_words",
}


def lexicon_from_mapping(data: Dict[str, Any]) -> Lexicon:
    """Build a lexicon from a JSON-style mapping.

    Recognized keys are ``positive``, ``negative``, ``neutral``, ``negation``
    and ``intensifier`` (lists of words) and ``phrases`` (list of objects
    with ``pattern`` and ``weight``). Missing keys keep the built-in data.
    """
    if not isinstance(data, dict):
        raise LexiconError("lexicon document must be a JSON object")

    unknown = set(data) - set(_FILE_KEYS) - {"phrases"}
    if unknown:
        raise LexiconError(f"unknown lexicon keys: {sorted(unknown)}")

    kwargs: Dict[str, Any] = {}
    for key, attr in _FILE_KEYS.items():
        if key not in data:
            continue
        words = data[key]
        if not isinstance(words, list) or not all(isinstance(word, str) for word in words):
            raise LexiconError(f"{key} must be a list of words")
        kwargs[attr] = frozenset(words)

    if "phrases" in data:
        raw_phrases = data["phrases"]
        if not isinstance(raw_phrases, list):
            raise LexiconError("phrases must be a list")
        patterns = []
        for item in raw_phrases:
            try:
                pattern = str(item["pattern"])
                weight = float(item["weight"])
            except (KeyError, TypeError, ValueError) as exc:
                raise LexiconError(f"invalid phrase entry: {item!r}") from exc
            patterns.append(PhrasePattern(pattern, _polarity_for(weight), weight))
        kwargs["phrase_patterns"] = tuple(patterns)

    return Lexicon(**kwargs)


def load_lexicon(path: Union[str, Path, None] = None) -> Lexicon:
    if not path:
        return DEFAULT_LEXICON
    try:
        with open(path, "r", encoding="utf-8") as lexicon_file:
            data = json.load(lexicon_file)
    except (OSError, json.JSONDecodeError) as exc:
        raise LexiconError(f"could not read lexicon file {path}: {exc}") from exc
    return lexicon_from_mapping(data)
