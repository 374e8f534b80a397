"""Commit-message word frequencies."""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable

from .models import MessageWord

STOP_WORDS = frozenset(
    """
    the and for are but not you all can her was one our out day get use man
    new now way may say each which their time will about if up many then them
    these so some would make like into him has two more very what know just
    first could any my than much your how said she his been have there we were
    they who oil its find long down did come made part
    """.split()
)

MIN_COUNT = 2
MAX_WORDS = 50


def _strip_symbols(token: str) -> str:
    start, end = 0, len(token)
    while start < end and not token[start].isalnum():
        start += 1
    while end > start and not token[end - 1].isalnum():
        end -= 1
    return token[start:end]


def tokenize(message: str) -> list[str]:
    """Split a message into counted words.

    Tokens of two characters or fewer and ``#``-prefixed tokens are
    dropped, surrounding punctuation is stripped, and stop words removed.
    """
    words = []
    for token in message.split():
        if len(token) <= 2 or token.startswith("#"):
            continue
        word = _strip_symbols(token).lower()
        if len(word) <= 2 or word in STOP_WORDS:
            continue
        words.append(word)
    return words


def message_words(
    messages: Iterable[str],
    min_count: int = MIN_COUNT,
    limit: int = MAX_WORDS,
) -> list[MessageWord]:
    """Most frequent words across ``messages``, weighted ``log2(count) + 1``.

    Ties on count are broken alphabetically.
    """
    counts: Counter[str] = Counter()
    for message in messages:
        counts.update(tokenize(message))

    words = [
        MessageWord(word=word, count=count, weight=math.log2(count) + 1)
        for word, count in counts.items()
        if count >= min_count
    ]
    words.sort(key=lambda w: (-w.count, w.word))
    return words[:limit]
