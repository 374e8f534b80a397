"""Tests for commit-message word counting."""

import math

from commit_insight.stats.words import STOP_WORDS, message_words, tokenize


class TestTokenize:
    def test_drops_short_and_hash_tokens(self):
        """Tokens under three characters and issue refs are dropped."""
        assert tokenize("Fix #123 in db layer") == ["fix", "layer"]

    def test_strips_punctuation_and_lowercases(self):
        """Punctuation is trimmed and case folded."""
        assert tokenize("(Refactor): parser, PARSER!") == ["refactor", "parser", "parser"]

    def test_stop_words_removed(self):
        """Stop words never become tokens."""
        assert tokenize("Update the README and their docs") == ["update", "readme", "docs"]

    def test_stripped_token_too_short(self):
        """A token that shrinks to two characters after stripping is dropped."""
        assert tokenize("'ok'") == []

    def test_stop_words_include_common_words(self):
        """The stop list covers articles and common filler."""
        assert "the" in STOP_WORDS
        assert "part" in STOP_WORDS


class TestMessageWords:
    def test_single_occurrence_excluded(self):
        """A word seen once is not reported; twice is, with weight log2(2)+1."""
        words = message_words(["fix parser crash", "fix lexer"])
        assert [(w.word, w.count) for w in words] == [("fix", 2)]
        assert words[0].weight == 2.0

    def test_sorted_by_count_then_word(self):
        """Higher counts first, ties alphabetical, weight log2(count)+1."""
        messages = ["alpha beta gamma"] * 2 + ["gamma"] * 2 + ["beta"]
        words = message_words(messages)
        assert [(w.word, w.count) for w in words] == [("gamma", 4), ("beta", 3), ("alpha", 2)]
        assert words[0].weight == math.log2(4) + 1

    def test_capped(self):
        """At most fifty words are reported."""
        messages = [" ".join(f"word{i:03d}" for i in range(80))] * 2
        assert len(message_words(messages)) == 50

    def test_empty(self):
        """No messages, no words."""
        assert message_words([]) == []
