"""Provider-specific transport client for LLM requests.

Architectural role:
    Executes one HTTP request against the configured provider and extracts the
    completion text.

Model invocation flow:
    `service.TextGenerator.generate` / `LLMSummarizer.summarize`
    -> `send_request(payload)` -> provider branch (OpenAI-compatible / Anthropic /
    Gemini) -> completion text.

Retry behavior:
    No retry loop. Each call is attempted once with `REQUEST_TIMEOUT_SECONDS`.

Failure handling model:
    Failures raise typed errors instead of returning sentinel strings:
    - `ConfigurationError`: unknown provider or missing API key.
    - `GenerationError`: HTTP/transport failure or unexpected response shape.
    Messages are sanitized: provider label and status code only, never raw
    response bodies or keys.
"""

import logging

import requests

from textpilot.core.errors import ConfigurationError, GenerationError
from textpilot.llm import provider_config


logger = logging.getLogger(__name__)


def _sanitized_http_error(provider_name: str, err: requests.exceptions.RequestException) -> GenerationError:
    """Build a provider-labeled error without exposing raw internals."""
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    label = str(provider_name or "provider").upper()
    message = f"{label} HTTP ERROR ({status_code})" if status_code else f"{label} HTTP ERROR"
    return GenerationError(message, provider=provider_name, status_code=status_code)


def _require_key(provider_name: str, key_file: str | None) -> str:
    api_key = provider_config.load_key(key_file)
    if not api_key:
        raise ConfigurationError(
            f"{provider_name.upper()} API key not found",
            context={"provider": provider_name},
        )
    return api_key


def _split_system(messages: list) -> tuple[str | None, list[dict]]:
    """Separate the system prompt from user/assistant turns."""
    system_prompt = None
    turns = []

    for msg in messages:
        if not isinstance(msg, dict):
            continue

        role = msg.get("role")
        content = msg.get("content", "")

        if role == "system":
            if isinstance(content, str) and content.strip():
                system_prompt = content.strip()
        elif role in ("user", "assistant") and content:
            turns.append({"role": role, "content": content})

    return system_prompt, turns


def _openai_compatible_request(provider_name: str, payload: dict) -> tuple[str, dict, dict]:
    config = provider_config.PROVIDERS[provider_name]
    headers = {"Content-Type": "application/json"}

    if config["key_file"]:
        headers["Authorization"] = f"Bearer {_require_key(provider_name, config['key_file'])}"

    body = dict(payload)
    body["stream"] = False
    return config["url"], headers, body


def _anthropic_request(payload: dict) -> tuple[str, dict, dict]:
    config = provider_config.PROVIDERS["anthropic"]
    headers = {
        "x-api-key": _require_key("anthropic", config["key_file"]),
        "anthropic-version": provider_config.ANTHROPIC_VERSION,
        "Content-Type": "application/json",
    }

    system_prompt, turns = _split_system(payload.get("messages", []))
    body = {
        "model": payload.get("model", provider_config.MODEL_NAME),
        "max_tokens": payload.get("max_tokens", provider_config.DEFAULT_MAX_TOKENS),
        "messages": turns,
    }
    if system_prompt:
        body["system"] = system_prompt
    for name in ("temperature", "top_p"):
        if name in payload:
            body[name] = payload[name]

    return config["url"], headers, body


def _gemini_request(payload: dict) -> tuple[str, dict, dict]:
    config = provider_config.PROVIDERS["gemini"]
    headers = {
        "x-goog-api-key": _require_key("gemini", config["key_file"]),
        "Content-Type": "application/json",
    }

    system_prompt, turns = _split_system(payload.get("messages", []))
    contents = [
        {
            "role": "model" if turn["role"] == "assistant" else "user",
            "parts": [{"text": str(turn["content"])}],
        }
        for turn in turns
    ]
    body = {"contents": contents}
    if system_prompt:
        body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    generation_config = {}
    if "temperature" in payload:
        generation_config["temperature"] = payload["temperature"]
    if "top_p" in payload:
        generation_config["topP"] = payload["top_p"]
    if generation_config:
        body["generationConfig"] = generation_config

    url = config["url"].format(model=payload.get("model", provider_config.MODEL_NAME))
    return url, headers, body


def _extract_text(provider_name: str, data: dict) -> str:
    """Pull completion text out of the provider-specific response shape."""
    if provider_name == "anthropic":
        return data["content"][0]["text"]
    if provider_name == "gemini":
        return data["candidates"][0]["content"]["parts"][0]["text"]
    return data["choices"][0]["message"]["content"]


def send_request(payload: dict, provider: str | None = None) -> str:
    """Send one non-streaming request and return the stripped completion text.

    Args:
        payload: OpenAI-style payload (`model`, `messages`, sampling fields).
        provider: Provider override; defaults to `provider_config.PROVIDER`.

    Returns:
        Completion text (may be empty; callers decide whether that is an error).

    Provider handling:
        - OpenAI-compatible providers: payload forwarded with `stream=False`.
        - Anthropic: system prompt lifted to `system`, default `max_tokens`.
        - Gemini: messages remapped to `contents` plus `generationConfig`.

    Raises:
        ConfigurationError: Unknown provider or missing key.
        GenerationError: Transport failure, non-2xx status, or malformed body.
    """
    provider_name = provider or provider_config.PROVIDER

    if provider_name not in provider_config.PROVIDERS:
        raise ConfigurationError(f"Invalid provider: {provider_name}", context={"provider": provider_name})

    if provider_name == "anthropic":
        url, headers, body = _anthropic_request(payload)
    elif provider_name == "gemini":
        url, headers, body = _gemini_request(payload)
    else:
        url, headers, body = _openai_compatible_request(provider_name, payload)

    try:
        response = requests.post(
            url,
            headers=headers,
            json=body,
            timeout=provider_config.REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as err:
        logger.warning("LLM request to %s failed: %s", provider_name, type(err).__name__)
        raise _sanitized_http_error(provider_name, err) from err
    except ValueError as err:
        raise GenerationError(
            f"{provider_name.upper()} returned a non-JSON response", provider=provider_name
        ) from err

    try:
        text = _extract_text(provider_name, data)
    except (KeyError, IndexError, TypeError) as err:
        raise GenerationError(
            f"{provider_name.upper()} returned an unexpected response shape", provider=provider_name
        ) from err

    return str(text or "").strip()
