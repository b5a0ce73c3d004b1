"""Provider/runtime configuration for the LLM layer.

Architectural role:
    Centralizes model/provider selection, request limits and credential lookup for
    `textpilot.llm.client`, `textpilot.llm.service` and the memory summarizer.

Determinism:
    Deterministic for a fixed process environment and key files. Values are
    resolved at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None`; `client.send_request` turns it
    into a `ConfigurationError`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Primary model routing controls.
PROVIDER = os.getenv("PROVIDER", "local")
MODEL_NAME = os.getenv("MODEL_NAME", "qwen2.5:3b")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
DEFAULT_MAX_TOKENS = int(os.getenv("MAX_TOKENS", "1024"))

# Shared sampling defaults for every generation call.
GENERATION_DEFAULTS = {
    "temperature": 0.45,
    "top_p": 0.9,
    "presence_penalty": 0.4,
    "frequency_penalty": 0.5,
}

# OpenAI-compatible and provider-specific endpoint map.
PROVIDERS = {

    "local": {
        "url": os.getenv("LOCAL_LLM_URL", "http://127.0.0.1:8080/v1/chat/completions"),
        "key_file": None
    },

    "openai": {
        "url": "https://api.openai.com/v1/chat/completions",
        "key_file": "config/openai.key"
    },

    "groq": {
        "url": "https://api.groq.com/openai/v1/chat/completions",
        "key_file": "config/groq.key"
    },

    "openrouter": {
        "url": "https://openrouter.ai/api/v1/chat/completions",
        "key_file": "config/openrouter.key"
    },

    "mistral": {
        "url": "https://api.mistral.ai/v1/chat/completions",
        "key_file": "config/mistral.key"
    },

    "anthropic": {
        "url": "https://api.anthropic.com/v1/messages",
        "key_file": "config/anthropic.key"
    },

    "gemini": {
        "url": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        "key_file": "config/gemini.key"
    },

}

ANTHROPIC_VERSION = "2023-06-01"

# Shared system instruction for every text-assistance prompt.
SYSTEM_MESSAGE = (
    "You are a writing assistant that works on text the user selected.\n"
    "Follow the task instructions exactly and return only the resulting text.\n"
    "Do not add explanations, preambles, or quotation marks around the result.\n"
)

# Memory and adapter settings.
MEMORY_STORAGE_PATH = os.getenv("MEMORY_STORAGE_PATH", "conversation_memory.json")
MEMORY_TOP_K = int(os.getenv("MEMORY_TOP_K", "3"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()

# Ask the model to classify intent before falling back to pattern routing.
USE_MODEL_ROUTING = os.getenv("USE_MODEL_ROUTING", "false").lower() == "true"


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/openai.key` -> `OPENAI_API_KEY`).
        2. Raw file contents at `path`.

    Edge cases:
        - `None` path returns `None`.
        - Missing or empty file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read().strip() or None
