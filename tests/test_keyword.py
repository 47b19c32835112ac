import logging

import pytest

from ledger_categorizer.core.errors import PatternError
from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.domain.text import compile_pattern, normalize
from ledger_categorizer.matchers.keyword import KeywordMatcher
from ledger_categorizer.models import Category, MatchMethod
from tests.conftest import make_category


def _match(category: Category, text: str):
    matcher = KeywordMatcher(CategoryCorpus.build([category]))
    return matcher.match(normalize(text), category)


def test_keyword_substring_hit() -> None:
    groceries = make_category("g", "Groceries", ["grocery"])
    [candidate] = _match(groceries, "WHOLE FOODS GROCERY #123")
    assert candidate.score == 1.0
    assert candidate.method == MatchMethod.KEYWORD
    assert candidate.match_type == "keyword"
    assert candidate.matched_text == "grocery"


def test_keyword_exact_hit() -> None:
    groceries = make_category("g", "Groceries", ["Grocery"])
    [candidate] = _match(groceries, "grocery")
    assert candidate.match_type == "exact_keyword"
    assert candidate.matched_text == "Grocery"


def test_merchant_pattern_hit_keeps_pattern_text() -> None:
    coffee = make_category("c", "Coffee", ["coffee"], ["Starbucks"])
    [candidate] = _match(coffee, "STARBUCKS STORE 0512 SEATTLE WA")
    assert candidate.match_type == "merchant_pattern"
    assert candidate.matched_text == "Starbucks"
    assert candidate.score == 1.0


def test_every_hit_is_reported() -> None:
    groceries = make_category("g", "Groceries", ["grocery"], ["whole foods"])
    found = _match(groceries, "WHOLE FOODS GROCERY")
    assert {c.matched_text for c in found} == {"grocery", "whole foods"}


def test_no_hit() -> None:
    shopping = make_category("s", "Shopping", ["amazon"])
    assert _match(shopping, "AMZN MKTP US*2A3B4") == []


def test_literal_patterns_are_not_regular_expressions() -> None:
    coffee = make_category("c", "Coffee", patterns=["st.*bucks"])
    assert _match(coffee, "STARBUCKS STORE") == []


def test_regex_patterns_when_opted_in() -> None:
    shopping = make_category("s", "Shopping", patterns=[r"amzn\s+mktp"], pattern_mode="regex")
    [candidate] = _match(shopping, "AMZN MKTP US*2A3B4")
    assert candidate.match_type == "merchant_pattern"
    assert candidate.matched_text == r"amzn\s+mktp"


def test_regex_can_match_raw_punctuation() -> None:
    shopping = make_category("s", "Shopping", patterns=[r"us\*\w+"], pattern_mode="regex")
    assert len(_match(shopping, "AMZN MKTP US*2A3B4")) == 1


def test_malformed_regex_raises_pattern_error() -> None:
    with pytest.raises(PatternError):
        compile_pattern("(unclosed")


def test_corpus_drops_malformed_regex_once(caplog: pytest.LogCaptureFixture) -> None:
    mixed = make_category("b", "Mixed", patterns=["(unclosed", r"amzn\s+mktp"], pattern_mode="regex")
    with caplog.at_level(logging.WARNING):
        corpus = CategoryCorpus.build([mixed])

    assert [entry.raw for entry in corpus.entries_for("b")] == [r"amzn\s+mktp"]
    assert len([r for r in caplog.records if "(unclosed" in r.getMessage()]) == 1
    assert len(KeywordMatcher(corpus).match(normalize("AMZN MKTP US*2A3B4"), mixed)) == 1


def test_non_ascii_keyword_falls_back_to_folded_substring() -> None:
    sushi = make_category("j", "Sushi", ["寿司"])
    [candidate] = _match(sushi, "寿司 Bar Tokyo")
    assert candidate.matched_text == "寿司"
    assert _match(sushi, "Pizza Place") == []


def test_partly_non_ascii_keyword_needs_the_whole_word() -> None:
    fuel = make_category("f", "Fuel", ["Öl"])
    # Normalization alone would reduce the keyword to "l".
    assert _match(fuel, "WALMART SUPERCENTER") == []
    [candidate] = _match(fuel, "ÖL TANKSTELLE 12")
    assert candidate.matched_text == "Öl"
    assert candidate.match_type == "keyword"

    cafe = make_category("c", "Cafe", patterns=["Café Nero"])
    assert _match(cafe, "CAF NERO 22") == []
    assert len(_match(cafe, "CAFÉ NERO 22 LONDON")) == 1
