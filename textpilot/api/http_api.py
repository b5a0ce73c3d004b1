"""
HTTP API adapter for the TextPilot engine.

Architectural role:
- Expose routing, assistance and memory management over HTTP.
- Enforce adapter-level input validation with pydantic request models.
- Delegate all work to `textpilot.core.engine.AssistantEngine`.

Endpoint responsibilities:
- `POST /v1/route`: classify an instruction without generating anything.
- `POST /v1/assist`: full pipeline (route -> context -> generate -> remember).
- `GET /v1/memory`: list stored exchanges (newest first, optional `limit`).
- `GET /v1/memory/stats`: aggregate memory counters.
- `GET /v1/memory/search`: substring search over stored exchanges.
- `GET /v1/memory/export` / `POST /v1/memory/import`: JSON snapshot round-trip.
- `DELETE /v1/memory` / `DELETE /v1/memory/{entry_id}`: clear or delete.

Error handling strategy:
- Typed errors map to status codes: validation 400, configuration and
  unavailable capability 503, generation 502.
- Failed imports return 400 and leave memory untouched.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- The default engine reads/writes the JSON memory file on first use.
"""

from dotenv import load_dotenv

load_dotenv()

import dataclasses
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from textpilot.core import errors
from textpilot.core.engine import AssistantEngine, build_default_engine
from textpilot.llm.provider_config import LOG_LEVEL


logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="TextPilot")


# ============================================================
# Request models
# ============================================================

class RouteRequest(BaseModel):
    text: str = ""


class AssistRequest(BaseModel):
    instruction: str
    selected_text: str = ""
    use_memory: bool = True


class ImportRequest(BaseModel):
    payload: str


# ============================================================
# Engine dependency
# ============================================================

@lru_cache(maxsize=1)
def get_engine() -> AssistantEngine:
    """Build the process-wide engine once; tests override this dependency."""
    return build_default_engine()


def _require_memory(engine: AssistantEngine):
    if engine.memory is None:
        raise errors.ServiceUnavailableError("Conversation memory is disabled")
    return engine.memory


def _routing_payload(routing, request) -> dict:
    """JSON projection of routing output; enums flatten to their values."""
    return {
        "intent": routing.intent.value,
        "outputType": routing.output_type,
        "tones": list(routing.tones),
        "score": routing.score,
        "via": routing.via,
        "targetLanguage": routing.target_language,
        "request": {
            "type": request.intent.value,
            **{
                key: list(value) if isinstance(value, tuple) else value
                for key, value in dataclasses.asdict(request).items()
            },
        },
    }


# ============================================================
# Error mapping
# ============================================================

_STATUS_BY_ERROR = [
    (errors.ValidationError, 400),
    (errors.ConfigurationError, 503),
    (errors.ServiceUnavailableError, 503),
    (errors.GenerationError, 502),
]


@app.exception_handler(errors.TextPilotError)
async def handle_textpilot_error(request, exc: errors.TextPilotError):
    status_code = next((status for cls, status in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.warning("Request failed with %s: %s", exc.code, exc.message)

    content = exc.to_dict()
    content["detail"] = errors.get_user_message(exc)
    return JSONResponse(status_code=status_code, content=content)


# ============================================================
# Routing / assistance
# ============================================================

@app.post("/v1/route")
async def route(body: RouteRequest, engine: AssistantEngine = Depends(get_engine)):
    routing, request = await engine.classify(body.text)
    return _routing_payload(routing, request)


@app.post("/v1/assist")
async def assist(body: AssistRequest, engine: AssistantEngine = Depends(get_engine)):
    result = await engine.process_request(
        body.instruction,
        selected_text=body.selected_text,
        use_memory=body.use_memory,
    )
    return {
        "text": result.text,
        "memoryId": result.memory_id,
        "contextUsed": bool(result.context),
        "routing": _routing_payload(result.routing, result.request),
    }


# ============================================================
# Memory management
# ============================================================

@app.get("/v1/memory")
async def list_memory(limit: int = 50, engine: AssistantEngine = Depends(get_engine)):
    memory = _require_memory(engine)
    return {"entries": [entry.to_dict() for entry in memory.get_recent_conversations(limit)]}


@app.get("/v1/memory/stats")
async def memory_stats(engine: AssistantEngine = Depends(get_engine)):
    return _require_memory(engine).get_stats()


@app.get("/v1/memory/search")
async def search_memory(q: str = Query(default=""), engine: AssistantEngine = Depends(get_engine)):
    memory = _require_memory(engine)
    return {"entries": [entry.to_dict() for entry in memory.search_conversations(q)]}


@app.get("/v1/memory/export")
async def export_memory(engine: AssistantEngine = Depends(get_engine)):
    return JSONResponse(content={"payload": _require_memory(engine).export_memory()})


@app.post("/v1/memory/import")
async def import_memory(body: ImportRequest, engine: AssistantEngine = Depends(get_engine)):
    memory = _require_memory(engine)
    if not memory.import_memory(body.payload):
        return JSONResponse(status_code=400, content={"error": "Invalid memory import payload"})
    return {"imported": len(memory)}


@app.delete("/v1/memory")
async def clear_memory(engine: AssistantEngine = Depends(get_engine)):
    return {"removed": _require_memory(engine).clear_memory()}


@app.delete("/v1/memory/{entry_id}")
async def delete_memory_entry(entry_id: str, engine: AssistantEngine = Depends(get_engine)):
    if not _require_memory(engine).delete_conversation(entry_id):
        return JSONResponse(status_code=404, content={"error": "Memory entry not found"})
    return {"deleted": entry_id}
