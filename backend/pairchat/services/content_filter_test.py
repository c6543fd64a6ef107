"""Unit tests for chat content filtering."""

from pairchat.services.content_filter import filter_bad_words


def test_masks_banned_word_with_same_length() -> None:
    assert filter_bad_words("I hate mondays", ["hate"]) == "I **** mondays"


def test_match_is_case_insensitive() -> None:
    assert filter_bad_words("HATE and Hate", ["hate"]) == "**** and ****"


def test_only_whole_words_are_masked() -> None:
    assert filter_bad_words("whatever hateful", ["hate"]) == "whatever hateful"


def test_regex_characters_in_word_list_are_literal() -> None:
    assert filter_bad_words("a.b axb", ["a.b"]) == "*** axb"


def test_defaults_to_configured_word_list() -> None:
    assert filter_bad_words("no bully here") == "no ***** here"


def test_clean_text_is_unchanged() -> None:
    assert filter_bad_words("hello there") == "hello there"
