"""Lexical retrieval package.

Provides the tokenizer and the BM25 ranker used by conversation memory to score
past exchanges against a new request.
"""
