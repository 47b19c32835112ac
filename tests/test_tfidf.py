import pytest

from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.domain.text import normalize
from ledger_categorizer.matchers.tfidf import TfidfIndex, TfidfMatcher
from ledger_categorizer.models import MatchMethod
from tests.conftest import make_category


def test_identical_document_scores_one() -> None:
    index = TfidfIndex(["grocery store", "coffee store", "hardware store"])
    scores = index.scores("grocery store")
    assert scores[0] == pytest.approx(1.0)
    assert 0.0 < scores[1] < scores[0]


def test_rare_terms_dominate_common_ones() -> None:
    index = TfidfIndex(["grocery store", "coffee store", "hardware store"])

    scores = index.scores("grocery")
    assert scores[0] > 0
    assert scores[1] == 0.0
    assert scores[2] == 0.0

    # "store" appears in every document, so it cannot separate them.
    common = index.scores("store")
    assert common[0] == pytest.approx(common[1])
    assert common[1] == pytest.approx(common[2])


def test_term_counts_matter() -> None:
    index = TfidfIndex(["coffee coffee shop", "coffee shop"])
    scores = index.scores("coffee coffee shop")
    assert scores[0] == pytest.approx(1.0)
    assert scores[1] == pytest.approx(3 / (5 ** 0.5 * 2 ** 0.5))


def test_unknown_terms_give_zero_vector() -> None:
    index = TfidfIndex(["grocery store"])
    assert list(index.scores("zzz qqq")) == [0.0]
    assert list(index.scores("")) == [0.0]


def test_empty_corpus() -> None:
    assert len(TfidfIndex([]).scores("coffee")) == 0
    blank = TfidfIndex(["", ""])
    assert blank.vocabulary == {}
    assert list(blank.scores("coffee")) == [0.0, 0.0]


def test_matcher_scores_each_category_string() -> None:
    groceries = make_category("g", "Groceries", ["grocery store", "supermarket"])
    coffee = make_category("c", "Coffee", ["coffee store"])
    matcher = TfidfMatcher(CategoryCorpus.build([groceries, coffee]))

    text = normalize("CITY GROCERY STORE 42")
    [candidate] = matcher.match(text, groceries)
    assert candidate.method == MatchMethod.COSINE_TFIDF
    assert candidate.matched_text == "grocery store"
    assert 0.0 < candidate.score <= 1.0

    [weaker] = matcher.match(text, coffee)
    assert weaker.score < candidate.score


def test_matcher_ignores_unrelated_text() -> None:
    shopping = make_category("s", "Shopping", ["amazon"])
    matcher = TfidfMatcher(CategoryCorpus.build([shopping]))
    assert matcher.match(normalize("AMZN MKTP US*2A3B4"), shopping) == []
