import re
from functools import lru_cache
from typing import Iterable, Optional

from pairchat.core.config import settings


@lru_cache(maxsize=32)
def _compile(words: tuple[str, ...]) -> list[tuple[re.Pattern[str], str]]:
    return [
        (re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE), "*" * len(word))
        for word in words
        if word
    ]


def _patterns(words: Optional[Iterable[str]]) -> list[tuple[re.Pattern[str], str]]:
    if words is None:
        words = settings.BANNED_WORDS
    return _compile(tuple(words))


def filter_bad_words(text: str, words: Optional[Iterable[str]] = None) -> str:
    """Mask every banned word in *text* with asterisks of the same length."""
    filtered = text
    for pattern, mask in _patterns(words):
        filtered = pattern.sub(mask, filtered)
    return filtered
