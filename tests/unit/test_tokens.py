"""Tests for the heuristic token estimator."""

from manual_rag.chunking.tokens import estimate_tokens


def test_empty_text():
    assert estimate_tokens("") == 0


def test_latin_four_chars_per_token():
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcdefgh") == 2
    assert estimate_tokens("abcde") == 2  # rounded up


def test_punctuation_and_spaces_two_chars_per_token():
    # 10 letters -> 2.5, ", " and "!" -> 1.5
    assert estimate_tokens("hello, world!") == 4
    assert estimate_tokens("...") == 2


def test_hangul_syllables():
    assert estimate_tokens("한국어") == 2


def test_japanese_kanji_and_katakana():
    # 7 CJK characters / 1.5 = 4.67
    assert estimate_tokens("日本語テキスト") == 5


def test_mixed_script_sums_each_class():
    # 3 CJK -> 2.0, 4 latin -> 1.0, 1 space -> 0.5
    assert estimate_tokens("한국어 test") == 4
