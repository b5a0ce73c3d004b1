"""BM25 relevance scoring of memory entries against a free-text query.

Scoring model:
    Okapi BM25 via `rank_bm25.BM25Okapi` (k1=1.2, b=0.75). Okapi's idf,
    ln((N - df + 0.5) / (df + 0.5)), turns negative for terms present in most
    documents; `rank_bm25` replaces those with `EPSILON * average_idf`, which can
    itself be negative on one- or two-entry stores. Every score is clamped at 0,
    so scores are always >= 0 and an entry sharing no query terms scores exactly 0.

Document text:
    An entry's document is its `query` followed by its `content`, tokenized with
    `textpilot.retrieval.tokenizer.tokenize`.

Corpus statistics:
    A fresh `BM25Okapi` index is built over the whole store on every call. No
    index is cached; the store is small and bounded, and it changes between calls.
"""

from typing import Sequence

from rank_bm25 import BM25Okapi

from textpilot.retrieval.tokenizer import tokenize


K1 = 1.2
B = 0.75
EPSILON = 0.25


def entry_terms(entry) -> list[str]:
    """Tokenize the searchable text of one memory entry (query + content)."""
    query = getattr(entry, "query", "") or ""
    content = getattr(entry, "content", "") or ""
    return tokenize(f"{query} {content}")


def query_terms(query: str) -> list[str]:
    """Unique query terms in first-seen order; a repeated term counts once."""
    return list(dict.fromkeys(tokenize(query)))


def build_index(corpus: Sequence[list[str]]) -> BM25Okapi | None:
    """Index tokenized documents; `None` when there is nothing to score against."""
    if not corpus or not any(corpus):
        return None
    return BM25Okapi(list(corpus), k1=K1, b=B, epsilon=EPSILON)


def score_entries(query: str, entries: Sequence) -> list[float]:
    """BM25 score of every entry for `query`, in store order."""
    if not entries:
        return []

    terms = query_terms(query)
    index = build_index([entry_terms(entry) for entry in entries])
    if index is None or not terms:
        return [0.0] * len(entries)

    return [max(0.0, float(value)) for value in index.get_scores(terms)]


def score(query: str, entry, entries: Sequence) -> float:
    """BM25 score of one entry, with corpus statistics over `entries`.

    An entry that is not part of `entries` is scored as an extra document of the
    corpus.
    """
    corpus = list(entries)
    position = next((i for i, candidate in enumerate(corpus) if candidate is entry), None)
    if position is None:
        corpus.append(entry)
        position = len(corpus) - 1

    return score_entries(query, corpus)[position]


def rank(query: str, entries: Sequence, top_k: int) -> list[tuple[object, float]]:
    """Score every entry and return the `top_k` best as `(entry, score)` pairs.

    Sorting is stable on score descending, so ties keep store order and
    zero-score entries still fill `top_k`.
    """
    if top_k <= 0 or not entries:
        return []

    scored = list(zip(entries, score_entries(query, entries)))
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:top_k]
