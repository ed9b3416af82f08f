from review_sentiment_v1.tokenizer import normalize, tokenize


def test_empty_and_blank_text_yield_no_tokens() -> None:
    assert tokenize("") == []
    assert tokenize("   \n\t ") == []
    assert tokenize("''' !!! ...") == []


def test_lowercases_and_strips_punctuation() -> None:
    assert tokenize("Hello, WORLD!!") == ["hello", "world"]
    assert tokenize("well-made 10/10") == ["well", "made", "10", "10"]


def test_keeps_internal_apostrophes_only() -> None:
    assert tokenize("Don't  stop") == ["don't", "stop"]
    assert tokenize("'quoted' words") == ["quoted", "words"]


def test_typographic_apostrophes_are_normalised() -> None:
    assert tokenize("It didn’t work") == ["it", "didn't", "work"]
    assert normalize("Didn’t") == "didn't"


def test_order_is_preserved() -> None:
    assert tokenize("not a good film") == ["not", "a", "good", "film"]
