"""Memory subsystem package.

Architectural role:
    Groups the stateful memory components:
    - `conversation_memory`: bounded store of past exchanges with dual-mode retrieval.
    - `temporal`: chronological-cue detection that switches retrieval mode.
    - `storage`: key/value durability backends mirroring the store.
    - `summarizer`: LLM-backed compaction of oversized entries.
"""
