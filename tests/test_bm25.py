"""Tests for BM25 scoring and ranking."""

from types import SimpleNamespace

import pytest

from textpilot.retrieval import bm25


def make_entry(query, content):
    return SimpleNamespace(query=query, content=content)


@pytest.fixture
def entries():
    return [
        make_entry("How do python decorators work?", "Decorators wrap a function in python."),
        make_entry("Best pasta recipe", "Boil the pasta and add tomato sauce."),
        make_entry("Write an email to the landlord", "Dear landlord, the heating is broken."),
    ]


def test_entry_terms_cover_query_and_content():
    terms = bm25.entry_terms(make_entry("Best pasta", "Boil it"))
    assert terms == ["best", "pasta", "boil"]


def test_zero_overlap_scores_zero(entries):
    assert bm25.score("quantum physics", entries[1], entries) == 0.0


def test_score_entries_follows_store_order(entries):
    scores = bm25.score_entries("pasta recipe", entries)

    assert len(scores) == 3
    assert scores[1] > 0
    assert scores[0] == 0.0
    assert scores[2] == 0.0


def test_single_entry_store_never_scores_negative():
    entry = make_entry("Best pasta recipe", "Boil the pasta.")

    assert bm25.score("pasta", entry, [entry]) == 0.0
    assert bm25.rank("pasta", [entry], top_k=1) == [(entry, 0.0)]


def test_store_without_index_terms_scores_zero():
    store = [make_entry("ok", "hi"), make_entry("no", "so")]

    assert bm25.score_entries("pasta", store) == [0.0, 0.0]
    assert [score for _, score in bm25.rank("pasta", store, top_k=2)] == [0.0, 0.0]


def test_blank_query_scores_zero(entries):
    assert bm25.score_entries("   ", entries) == [0.0, 0.0, 0.0]
    assert bm25.score_entries("pasta", []) == []


def test_entry_outside_store_is_scored(entries):
    outsider = make_entry("Pasta for dinner", "Cook the pasta al dente.")
    store = [entries[0], entries[2]]

    assert bm25.score("pasta", outsider, store) > 0


def test_rank_orders_by_relevance(entries):
    ranked = bm25.rank("explain python decorators", entries, top_k=3)

    assert ranked[0][0] is entries[0]
    assert ranked[0][1] > 0
    assert [score for _, score in ranked[1:]] == [0.0, 0.0]


def test_rank_ties_keep_store_order(entries):
    """Zero-score entries still fill top_k, in store order."""
    ranked = bm25.rank("zzz unrelated", entries, top_k=2)

    assert [entry for entry, _ in ranked] == entries[:2]


def test_rank_respects_top_k(entries):
    assert bm25.rank("pasta", entries, top_k=0) == []
    assert len(bm25.rank("pasta", entries, top_k=10)) == 3


def test_repeated_query_terms_count_once(entries):
    single = bm25.score("pasta", entries[1], entries)
    repeated = bm25.score("pasta pasta pasta", entries[1], entries)
    assert single == pytest.approx(repeated)


def test_distinctive_overlap_ranks_higher():
    entries = [
        make_entry("write email template", "Here is an email template."),
        make_entry("create cover letter", "Here is a cover letter."),
        make_entry("draft LinkedIn post", "Here is a LinkedIn post."),
    ]

    assert bm25.score("email template", entries[0], entries) > bm25.score("email template", entries[1], entries)
    assert all(bm25.score("quantum", entry, entries) == 0.0 for entry in entries)
