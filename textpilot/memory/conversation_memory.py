"""Bounded conversation memory with dual-mode retrieval.

Purpose:
- Keep an ordered, bounded history of past request/response exchanges.
- Serve the most useful subset of that history as context for the next request.
- Mirror the history into a durability backend so it survives restarts.

Data flow:
1. On construction, load a prior snapshot from the durability backend. Corrupt or
   non-list snapshots are discarded and the store starts empty.
2. `add_conversation` validates input, summarizes oversized content (fail-open),
   appends the entry, evicts the oldest entries beyond `max_items`, then mirrors
   the full store to the backend (best-effort).
3. `retrieve_relevant` returns the newest entries for chronological requests
   ("what did we discuss earlier?"), otherwise BM25-ranked entries.

Ordering:
    Insertion order is recency order. The in-memory mutation of
    `add_conversation` happens after summarization and before it returns, so
    sequentially awaited calls always land in call order.

Side effects:
- Calls the summarization capability for content over the length threshold.
- Overwrites one key in the durability backend on every mutation.
- Logs load, persistence and summarization failures.
"""

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from textpilot.core.errors import ValidationError
from textpilot.memory.storage import StorageBackend
from textpilot.memory.summarizer import Summarizer
from textpilot.memory.temporal import detect_chronological_query
from textpilot.retrieval import bm25


logger = logging.getLogger(__name__)


MAX_MEMORY_ITEMS = 50
CONTENT_LENGTH_THRESHOLD = 500
MAX_QUERY_LENGTH = 200
MEMORY_STORAGE_KEY = "conversationMemory"
SUMMARY_TIMEOUT_SECONDS = 30.0
DEFAULT_TOP_K = 3

RETRIEVAL_CHRONOLOGICAL = "chronological"
RETRIEVAL_SEMANTIC = "semantic"

RELEVANT_CONTEXT_HEADER = "RELEVANT CONVERSATION CONTEXT:"
RECENT_CONTEXT_HEADER = "RECENT CONVERSATION CONTEXT:"

DEFAULT_METADATA = {
    "intent": "unknown",
    "format": "unknown",
    "tone": "unknown",
}


def generate_memory_id() -> str:
    """Return a unique id of the form `mem_<epoch-ms>_<random>`."""
    return f"mem_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_text(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string", field=field_name)
    return value


@dataclass(frozen=True)
class MemoryEntry:
    """One stored exchange.

    Attributes:
        id: Unique id (`mem_<ms>_<random>`).
        query: User request, truncated to the store's query limit.
        content: Text usable as context; the summary when `is_summarized`.
        is_summarized: Whether `content` is a summary of the original output.
        original_content_length: Character count before summarization.
        timestamp: ISO-8601 creation time (UTC).
        metadata: Open map; always has `intent`, `format` and `tone`.
    """

    id: str
    query: str
    content: str
    is_summarized: bool = False
    original_content_length: int = 0
    timestamp: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON export/persistence shape (camelCase keys)."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "query": self.query,
            "content": self.content,
            "originalContentLength": self.original_content_length,
            "isSummarized": self.is_summarized,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MemoryEntry":
        """Build an entry from its serialized shape.

        Sparse records are accepted: a missing id, timestamp, length or metadata
        gets a default. Missing or non-string `query`/`content` is rejected.

        Raises:
            ValueError: The record cannot represent a memory entry.
        """
        if not isinstance(data, dict):
            raise ValueError("memory entry must be a JSON object")

        query = data.get("query")
        content = data.get("content")
        if not isinstance(query, str) or not isinstance(content, str):
            raise ValueError("memory entry requires string 'query' and 'content'")

        entry_id = data.get("id") or generate_memory_id()
        if not isinstance(entry_id, str):
            raise ValueError("memory entry 'id' must be a string")

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("memory entry 'metadata' must be an object")

        original_length = data.get("originalContentLength")
        if isinstance(original_length, bool) or not isinstance(original_length, int) or original_length < 0:
            original_length = len(content)

        timestamp = data.get("timestamp")
        if not isinstance(timestamp, str) or not timestamp:
            timestamp = _utc_now_iso()

        is_summarized = data.get("isSummarized", False)
        if not isinstance(is_summarized, bool):
            raise ValueError("memory entry 'isSummarized' must be a boolean")

        return cls(
            id=entry_id,
            query=query,
            content=content,
            is_summarized=is_summarized,
            original_content_length=original_length,
            timestamp=timestamp,
            metadata={**DEFAULT_METADATA, **metadata},
        )


@dataclass(frozen=True)
class RetrievedMemory:
    """A memory entry tagged with how it was retrieved.

    `score` is set for semantic hits and `None` for chronological ones.
    """

    entry: MemoryEntry
    retrieval_type: str
    score: float | None = None

    @property
    def query(self) -> str:
        return self.entry.query

    @property
    def content(self) -> str:
        return self.entry.content

    def to_dict(self) -> dict[str, Any]:
        data = self.entry.to_dict()
        data["retrievalType"] = self.retrieval_type
        if self.score is not None:
            data["score"] = self.score
        return data


class ConversationMemory:
    """Sole owner of the ordered memory entries.

    Args:
        storage: Durability backend (`get`/`set`), mirrored on every mutation.
        summarizer: Optional summarization capability for oversized content.
        max_items: Upper bound on stored entries (FIFO eviction).
        content_length_threshold: Content longer than this is summarized.
        max_query_length: Queries longer than this are cut and suffixed "...".
        summary_timeout: Seconds to wait for the summarizer; `None` waits forever.
        storage_key: Key under which the snapshot is stored.
    """

    def __init__(
        self,
        storage: StorageBackend,
        summarizer: Summarizer | None = None,
        max_items: int = MAX_MEMORY_ITEMS,
        content_length_threshold: int = CONTENT_LENGTH_THRESHOLD,
        max_query_length: int = MAX_QUERY_LENGTH,
        summary_timeout: float | None = SUMMARY_TIMEOUT_SECONDS,
        storage_key: str = MEMORY_STORAGE_KEY,
    ):
        if max_items < 1:
            raise ValidationError("max_items must be at least 1", field="max_items")

        self.storage = storage
        self.summarizer = summarizer
        self.max_items = max_items
        self.content_length_threshold = content_length_threshold
        self.max_query_length = max_query_length
        self.summary_timeout = summary_timeout
        self.storage_key = storage_key

        self._entries: list[MemoryEntry] = []
        self._load()

    def __len__(self) -> int:
        return len(self._entries)

    # -----------------------------------------------------
    # Durability
    # -----------------------------------------------------

    def _load(self) -> None:
        """Restore the last snapshot; anything unusable yields an empty store."""
        try:
            stored = self.storage.get(self.storage_key)
        except Exception:
            logger.exception("Failed to read conversation memory snapshot")
            return

        if stored is None:
            logger.debug("No conversation memory snapshot found, starting fresh")
            return

        if not isinstance(stored, list):
            logger.warning("Discarding conversation memory snapshot: expected a list, got %s", type(stored).__name__)
            return

        try:
            entries = [MemoryEntry.from_dict(item) for item in stored]
        except ValueError as err:
            logger.warning("Discarding corrupt conversation memory snapshot: %s", err)
            return

        self._entries = entries[-self.max_items:]
        logger.info("Loaded %d conversation memory entries", len(self._entries))

    def _persist(self) -> None:
        """Mirror the full store into the backend; failures are logged, not raised."""
        snapshot = [entry.to_dict() for entry in self._entries]
        try:
            self.storage.set(self.storage_key, snapshot)
        except Exception:
            logger.exception("Failed to persist conversation memory (%d entries)", len(snapshot))

    # -----------------------------------------------------
    # Writes
    # -----------------------------------------------------

    async def add_conversation(self, query: str, content: str, metadata: dict[str, Any] | None = None) -> MemoryEntry:
        """Store one exchange and return the created entry.

        Args:
            query: The user's request.
            content: The generated output.
            metadata: Extra fields (intent, format, tone, ...). Unknown keys are kept.

        Returns:
            The stored `MemoryEntry`.

        Edge cases:
            - Query over `max_query_length` is truncated with a "..." suffix.
            - Content over `content_length_threshold` is summarized; a failed,
              empty or timed-out summary stores the original content instead.
            - `original_content_length` is always the pre-summary length.

        Raises:
            ValidationError: Blank/non-string query or content, or non-dict metadata.
        """
        _require_text(query, "query")
        _require_text(content, "content")
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError("metadata must be a mapping", field="metadata")

        if len(query) > self.max_query_length:
            stored_query = query[:self.max_query_length] + "..."
        else:
            stored_query = query

        stored_content = content
        is_summarized = False

        if len(content) > self.content_length_threshold:
            summary = await self._summarize(content)
            if summary and summary != content:
                stored_content = summary
                is_summarized = True
                logger.debug("Content summarized: %d -> %d chars", len(content), len(summary))

        caller_metadata = {key: value for key, value in (metadata or {}).items() if value is not None}
        entry = MemoryEntry(
            id=generate_memory_id(),
            query=stored_query,
            content=stored_content,
            is_summarized=is_summarized,
            original_content_length=len(content),
            timestamp=_utc_now_iso(),
            metadata={**DEFAULT_METADATA, **caller_metadata},
        )

        self._entries.append(entry)
        self._evict_overflow()
        self._persist()

        logger.debug("Added conversation to memory: %s", entry.id)
        return entry

    async def _summarize(self, content: str) -> str | None:
        """Fail-open summarization: returns `None` whenever no usable summary exists."""
        if self.summarizer is None:
            logger.warning("No summarizer configured; storing full content")
            return None

        try:
            if self.summary_timeout:
                summary = await asyncio.wait_for(self.summarizer.summarize(content), timeout=self.summary_timeout)
            else:
                summary = await self.summarizer.summarize(content)
        except asyncio.TimeoutError:
            logger.warning("Summarization timed out after %.1fs; storing original content", self.summary_timeout)
            return None
        except Exception:
            logger.exception("Summarization failed; storing original content")
            return None

        if not isinstance(summary, str) or not summary.strip():
            logger.warning("Summarizer returned no text; storing original content")
            return None

        return summary.strip()

    def _evict_overflow(self) -> None:
        while len(self._entries) > self.max_items:
            removed = self._entries.pop(0)
            logger.debug("Evicted oldest memory entry: %s", removed.id)

    def clear_memory(self) -> int:
        """Remove every entry, persist the empty store, return how many were removed."""
        removed = len(self._entries)
        self._entries = []
        self._persist()
        logger.info("Cleared conversation memory: %d entries removed", removed)
        return removed

    def delete_conversation(self, entry_id: str) -> bool:
        """Remove one entry by id; returns whether it existed."""
        _require_text(entry_id, "id")

        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[index]
                self._persist()
                logger.debug("Deleted memory entry: %s", entry_id)
                return True

        logger.warning("Memory entry not found: %s", entry_id)
        return False

    def import_memory(self, payload: str) -> bool:
        """Replace the store with a previously exported JSON array.

        Fails closed: malformed JSON, a non-array payload, or any unusable record
        returns False and leaves the current store untouched. Imports larger than
        `max_items` keep the newest entries.

        Raises:
            ValidationError: `payload` is not a non-empty string.
        """
        _require_text(payload, "payload")

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as err:
            logger.warning("Rejected memory import: invalid JSON (%s)", err)
            return False

        if not isinstance(data, list):
            logger.warning("Rejected memory import: expected a JSON array, got %s", type(data).__name__)
            return False

        try:
            entries = [MemoryEntry.from_dict(item) for item in data]
        except ValueError as err:
            logger.warning("Rejected memory import: %s", err)
            return False

        self._entries = entries[-self.max_items:]
        self._persist()
        logger.info("Imported %d memory entries", len(self._entries))
        return True

    # -----------------------------------------------------
    # Retrieval
    # -----------------------------------------------------

    def detect_chronological_query(self, query: str) -> bool:
        return detect_chronological_query(query)

    def calculate_bm25_score(self, query: str, entry: MemoryEntry) -> float:
        """BM25 score of `entry` for `query`, with statistics over the current store."""
        return bm25.score(query, entry, self._entries)

    def retrieve_relevant(self, query: str, top_k: int = DEFAULT_TOP_K) -> list[RetrievedMemory]:
        """Return up to `top_k` entries for `query`.

        Retrieval modes:
            - Chronological cue present: newest entries first, tagged
              `"chronological"`, no score.
            - Otherwise: every entry BM25-scored, sorted descending, tagged
              `"semantic"` with its score. Zero-score entries still fill `top_k`.

        Edge cases:
            - Empty store, blank query or `top_k <= 0` returns `[]`.
        """
        if not self._entries or top_k <= 0:
            return []
        if not isinstance(query, str) or not query.strip():
            return []

        if self.detect_chronological_query(query):
            recent = self._entries[-top_k:][::-1]
            logger.debug("Chronological retrieval: %d entries", len(recent))
            return [RetrievedMemory(entry=entry, retrieval_type=RETRIEVAL_CHRONOLOGICAL) for entry in recent]

        ranked = bm25.rank(query, self._entries, top_k)
        logger.debug("Semantic retrieval: %d entries", len(ranked))
        return [
            RetrievedMemory(entry=entry, retrieval_type=RETRIEVAL_SEMANTIC, score=score)
            for entry, score in ranked
        ]

    def get_relevant_context_string(self, query: str, top_k: int = DEFAULT_TOP_K) -> str:
        """Render `retrieve_relevant` results as a prompt-ready block ("" when empty)."""
        results = self.retrieve_relevant(query, top_k)
        if not results:
            return ""

        blocks = []
        for position, result in enumerate(results, start=1):
            if result.retrieval_type == RETRIEVAL_CHRONOLOGICAL:
                label = "Recent"
            else:
                label = f"Score: {result.score:.2f}"
            blocks.append(f"[{position}] Q: {result.query}\nA: {result.content}\n({label})")

        return f"{RELEVANT_CONTEXT_HEADER}\n\n" + "\n\n".join(blocks)

    def get_recent_conversations(self, count: int = 10) -> list[MemoryEntry]:
        """Newest-first slice of the store."""
        if count <= 0:
            return []
        return self._entries[-count:][::-1]

    def get_all_conversations(self) -> list[MemoryEntry]:
        """All entries, oldest first."""
        return list(self._entries)

    def search_conversations(self, term: str) -> list[MemoryEntry]:
        """Case-insensitive substring search over query and content."""
        _require_text(term, "term")
        needle = term.lower()
        return [
            entry
            for entry in self._entries
            if needle in entry.query.lower() or needle in entry.content.lower()
        ]

    def filter_by_metadata(self, filters: dict[str, Any] | None = None) -> list[MemoryEntry]:
        """Entries whose metadata equals every given key/value pair."""
        filters = filters or {}
        missing = object()
        return [
            entry
            for entry in self._entries
            if all(entry.metadata.get(key, missing) == value for key, value in filters.items())
        ]

    def get_context_string(self, count: int = 5) -> str:
        """Render the newest `count` entries as a recency-ordered context block."""
        recent = self.get_recent_conversations(count)
        if not recent:
            return ""

        blocks = [
            f"[{len(recent) - index}] Q: {entry.query}\nA: {entry.content}"
            for index, entry in enumerate(recent)
        ]
        return f"{RECENT_CONTEXT_HEADER}\n\n" + "\n\n".join(blocks)

    # -----------------------------------------------------
    # Reporting
    # -----------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Aggregate counters over the current store.

        `compression_ratio` is `(1 - stored / original) * 100` formatted as
        `"x.y%"`; it is `"0.0%"` for an empty store.
        """
        total = len(self._entries)
        summarized = sum(1 for entry in self._entries if entry.is_summarized)
        original_chars = sum(entry.original_content_length for entry in self._entries)
        stored_chars = sum(len(entry.content) for entry in self._entries)

        ratio = (1 - stored_chars / original_chars) * 100 if original_chars > 0 else 0.0

        intent_breakdown: dict[str, int] = {}
        for entry in self._entries:
            intent = str(entry.metadata.get("intent") or "unknown")
            intent_breakdown[intent] = intent_breakdown.get(intent, 0) + 1

        return {
            "total_conversations": total,
            "summarized_count": summarized,
            "total_original_chars": original_chars,
            "total_stored_chars": stored_chars,
            "compression_ratio": f"{ratio:.1f}%",
            "space_saved": original_chars - stored_chars,
            "intent_breakdown": intent_breakdown,
            "oldest_conversation": self._entries[0].timestamp if total else None,
            "newest_conversation": self._entries[-1].timestamp if total else None,
        }

    def export_memory(self) -> str:
        """Serialize the store as a pretty-printed JSON array."""
        return json.dumps([entry.to_dict() for entry in self._entries], indent=2, ensure_ascii=False)
