"""TextPilot: intent routing and conversational memory for selected-text assistance.

Subpackages:
    - `core`: shared types, typed errors, request orchestration.
    - `nlp`: rule-based intent routing and language extraction.
    - `retrieval`: tokenization and BM25 relevance ranking.
    - `memory`: bounded conversation memory, durability backends, summarization.
    - `llm`: provider configuration, transport and text generation.
    - `prompting`: per-intent prompt assembly.
    - `api`: CLI and HTTP adapters.
"""
