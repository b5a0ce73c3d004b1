"""Core request orchestration: route, recall, generate, remember.

Architectural role:
    Provides the execution pipeline used by the CLI and HTTP layers to turn one
    instruction (plus optional selected text) into generated output, with
    conversation memory on both sides of the generation call.

Control-flow model:
    1. Validate input (an instruction is required).
    2. Route the instruction (`SemanticRouter.route`, or `route_with_model` when a
       classifier is configured) and normalize it into one request variant.
    3. Fetch relevant memory context for the instruction (optional).
    4. Dispatch to the text-generation capability with intent-specific options.
    5. Post-process the output and store the exchange in memory.

Dependency model:
    Every collaborator is passed in explicitly; `build_default_engine` wires the
    production capabilities from configuration. There is no module-global
    engine state.

Error handling strategy:
    - `ValidationError` for empty instructions.
    - Generation failures propagate as typed errors; nothing is stored in memory
      for a failed or empty generation.
    - Memory write failures (summarization, persistence) are recovered inside
      `ConversationMemory` and never fail the request.

Determinism:
    Routing, normalization and context assembly are deterministic for fixed
    inputs and memory state. Generated text is not.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from textpilot.core.errors import ValidationError
from textpilot.core.routing_types import Intent, NormalizedRequest, RoutingResult
from textpilot.llm import provider_config
from textpilot.llm.service import GenerationOptions, TextGenerator, options_from_request
from textpilot.memory.conversation_memory import ConversationMemory
from textpilot.memory.storage import JsonFileStorage
from textpilot.memory.summarizer import LLMSummarizer
from textpilot.nlp.intent_router import SemanticRouter


logger = logging.getLogger(__name__)


class GeneratorProtocol(Protocol):
    """Minimal async interface required from the text-generation capability."""

    async def generate(self, text: str, options: GenerationOptions) -> str:
        ...


# Output mirrors the input text, so repeated paragraphs may be legitimate.
VERBATIM_INTENTS = (Intent.PROOFREAD, Intent.TRANSLATE)


@dataclass
class AssistResult:
    """Outcome of one processed request.

    Attributes:
        text: Post-processed generated output.
        routing: First-stage routing result.
        request: Normalized request variant that drove generation.
        context: Memory context passed to generation ("" when none).
        memory_id: Id of the stored memory entry, or `None` when memory is off.
    """

    text: str
    routing: RoutingResult
    request: NormalizedRequest
    context: str = ""
    memory_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def deduplicate_response(text: str, collapse_paragraphs: bool = True) -> str:
    """Remove verbatim repetition that small models sometimes produce.

    Important behavior:
        - Exact first-half/second-half duplication collapses to one half, only
          when each half is longer than 20 characters.
        - Repeated paragraphs keep their first occurrence only, unless
          `collapse_paragraphs` is False.
    """
    if not text:
        return ""

    stripped = text.strip()
    half = len(stripped) // 2
    if half > 20 and len(stripped) % 2 == 0 and stripped[:half] == stripped[half:]:
        stripped = stripped[:half].strip()

    if not collapse_paragraphs:
        return stripped

    paragraphs = re.split(r"\n\s*\n", stripped)
    seen = set()
    kept = []
    for paragraph in paragraphs:
        key = paragraph.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        kept.append(paragraph.strip())

    return "\n\n".join(kept)


class AssistantEngine:
    """Wires router, memory and generation into one request pipeline.

    Args:
        router: Intent router.
        memory: Conversation memory, or `None` to run stateless.
        generator: Text-generation capability.
        top_k: Number of memory entries retrieved as context.
        use_model_routing: Ask the router's classifier before the patterns.
    """

    def __init__(
        self,
        router: SemanticRouter,
        memory: ConversationMemory | None,
        generator: GeneratorProtocol,
        top_k: int = provider_config.MEMORY_TOP_K,
        use_model_routing: bool = False,
    ):
        self.router = router
        self.memory = memory
        self.generator = generator
        self.top_k = top_k
        self.use_model_routing = use_model_routing

    async def classify(self, instruction: str) -> tuple[RoutingResult, NormalizedRequest]:
        """Route and normalize without generating anything."""
        if self.use_model_routing:
            routing = await self.router.route_with_model(instruction)
        else:
            routing = self.router.route(instruction)
        return routing, self.router.normalize(instruction, routing)

    async def process_request(
        self,
        instruction: str,
        selected_text: str = "",
        use_memory: bool = True,
    ) -> AssistResult:
        """Process one instruction through routing, recall and generation.

        Args:
            instruction: What the user wants done ("make this more formal").
            selected_text: Text the instruction applies to, if any.
            use_memory: Read context from and write the exchange to memory.

        Returns:
            `AssistResult` with the output and the routing details.

        Raises:
            ValidationError: Blank instruction.
            GenerationError / ConfigurationError: From the generation capability.
        """
        if not isinstance(instruction, str) or not instruction.strip():
            raise ValidationError("instruction must be a non-empty string", field="instruction")

        routing, request = await self.classify(instruction)
        logger.info(
            "Processing request: intent=%s via=%s score=%.2f",
            routing.intent.value,
            routing.via,
            routing.score,
        )

        memory_enabled = use_memory and self.memory is not None
        context = ""
        if memory_enabled:
            context = self.memory.get_relevant_context_string(instruction, self.top_k)

        options = options_from_request(request, context=context)
        raw_output = await self.generator.generate(selected_text or "", options)
        text = deduplicate_response(
            raw_output,
            collapse_paragraphs=routing.intent not in VERBATIM_INTENTS,
        )

        metadata = {
            "intent": routing.intent.value,
            "format": routing.output_type or "unknown",
            "tone": ", ".join(routing.tones) if routing.tones else "unknown",
            "via": routing.via,
        }
        if routing.target_language:
            metadata["targetLanguage"] = routing.target_language

        memory_id = None
        if memory_enabled and text:
            entry = await self.memory.add_conversation(instruction, text, metadata)
            memory_id = entry.id

        return AssistResult(
            text=text,
            routing=routing,
            request=request,
            context=context,
            memory_id=memory_id,
            metadata=metadata,
        )


def build_default_engine(storage_path: str | None = None) -> AssistantEngine:
    """Construct the production engine from `provider_config` settings.

    Side effects:
        Reads the memory snapshot at `storage_path`
        (default `MEMORY_STORAGE_PATH`).
    """
    generator = TextGenerator()
    memory = ConversationMemory(
        storage=JsonFileStorage(storage_path or provider_config.MEMORY_STORAGE_PATH),
        summarizer=LLMSummarizer(generator),
    )
    return AssistantEngine(
        router=SemanticRouter(classifier=generator.complete),
        memory=memory,
        generator=generator,
        top_k=provider_config.MEMORY_TOP_K,
        use_model_routing=provider_config.USE_MODEL_ROUTING,
    )
