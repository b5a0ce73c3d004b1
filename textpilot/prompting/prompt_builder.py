"""Prompt assembly helpers used by the generation service.

This module only builds prompt strings from already-normalized inputs. Routing,
memory retrieval, model invocation and error handling happen elsewhere.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of prompt components per intent:
        1) task instruction
        2) style constraints (tone / format / length)
        3) optional memory context block
        4) the text being worked on
        5) output cue
    - No I/O, no global state mutation.

Prompt safety model:
    Selected text and memory context are interpolated as raw strings between
    explicit delimiters. Safety is instruction-led, not parser-enforced.
"""


TEXT_START = "=== TEXT START ==="
TEXT_END = "=== TEXT END ==="

LENGTH_HINTS = {
    "short": "Keep it short: a few sentences at most.",
    "medium": "Use a moderate length.",
    "long": "Be thorough and detailed.",
}

FORMAT_HINTS = {
    "markdown": "Format the result as Markdown.",
    "plain-text": "Return plain text without Markdown formatting.",
}


def _style_lines(tones=(), format=None, length=None) -> list[str]:
    lines = []
    if tones:
        lines.append(f"Use a {', '.join(tones)} tone.")
    if format in FORMAT_HINTS:
        lines.append(FORMAT_HINTS[format])
    if length in LENGTH_HINTS:
        lines.append(LENGTH_HINTS[length])
    return lines


def _context_block(context: str | None) -> str:
    """Render retrieved memory as a delimited, clearly non-authoritative block."""
    if not context or not context.strip():
        return ""
    return (
        "Earlier exchanges with this user (use only if relevant):\n"
        f"{context.strip()}\n\n"
    )


def _text_block(text: str) -> str:
    return f"{TEXT_START}\n{text.strip()}\n{TEXT_END}\n\n"


def _assemble(instruction: str, style: list[str], context: str | None, text: str | None, cue: str) -> str:
    parts = [instruction.strip() + "\n"]
    if style:
        parts.append("\n".join(style) + "\n")
    parts.append("\n")
    parts.append(_context_block(context))
    if text and text.strip():
        parts.append(_text_block(text))
    parts.append(cue)
    return "".join(parts)


# =========================================================
# PROOFREAD
# =========================================================

def build_proofread_prompt(text: str, context: str | None = None) -> str:
    """Correct grammar, spelling and punctuation while keeping wording and meaning."""
    return _assemble(
        "Proofread the text below. Fix grammar, spelling and punctuation errors only. "
        "Keep the original wording, meaning and structure wherever they are correct.",
        [],
        context,
        text,
        "Corrected text:",
    )


# =========================================================
# REWRITE
# =========================================================

def build_rewrite_prompt(
    text: str,
    goal: str | None = None,
    instruction: str | None = None,
    tones=(),
    length: str | None = None,
    context: str | None = None,
) -> str:
    """Rewrite existing text toward a goal.

    Edge cases:
        - No goal: falls back to the user's own instruction, then to a generic
          "improve clarity and flow" task.
    """
    task = goal or (f"Rewrite the text as requested: {instruction.strip()}" if instruction else None)
    task = task or "Rewrite the text to improve clarity and flow"
    if instruction and goal:
        task = f"{task}. User request: {instruction.strip()}"

    return _assemble(
        f"{task}. Preserve the original meaning and key facts.",
        _style_lines(tones=tones, length=length),
        context,
        text,
        "Rewritten text:",
    )


# =========================================================
# WRITE
# =========================================================

def build_write_prompt(
    instructions: str,
    reference_text: str | None = None,
    output_type: str | None = None,
    tones=(),
    format: str | None = None,
    context: str | None = None,
) -> str:
    """Draft new content; selected text, when present, is reference material only."""
    kind = output_type or "piece of text"
    instruction = f"Write a new {kind} following these instructions: {instructions.strip()}"
    if reference_text and reference_text.strip():
        instruction += "\nUse the text below as reference material; do not just repeat it."

    return _assemble(
        instruction,
        _style_lines(tones=tones, format=format),
        context,
        reference_text,
        "Draft:",
    )


# =========================================================
# SUMMARIZE
# =========================================================

def build_summarize_prompt(
    text: str,
    summary_type: str = "paragraph",
    length: str = "medium",
    context: str | None = None,
) -> str:
    if summary_type == "key-points":
        instruction = "Summarize the text below as a bulleted list of its key points."
    else:
        instruction = "Summarize the text below as one coherent paragraph."

    return _assemble(
        instruction + " Use only information present in the text.",
        _style_lines(length=length),
        context,
        text,
        "Summary:",
    )


# =========================================================
# TRANSLATE
# =========================================================

def build_translate_prompt(text: str, target_language_name: str) -> str:
    """Translation prompts never include memory context; it could leak into output."""
    return _assemble(
        f"Translate the text below into {target_language_name}. "
        "Preserve meaning, tone and formatting. Output only the translation.",
        [],
        None,
        text,
        f"{target_language_name} translation:",
    )


# =========================================================
# FREE-FORM PROMPT
# =========================================================

def build_free_prompt(instruction: str, text: str | None = None, context: str | None = None) -> str:
    return _assemble(
        instruction.strip() or "Help with the text below.",
        [],
        context,
        text,
        "Answer:",
    )
