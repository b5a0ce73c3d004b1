"""
Interactive CLI adapter for TextPilot.

Architectural role:
- Exposes terminal interaction with the assistance pipeline.
- Keeps a session-local "selected text" that instructions apply to.
- Delegates all routing and generation to `AssistantEngine.process_request`.

Request lifecycle (per user turn, CLI):
1. Read stdin.
2. Handle local control commands (see below).
3. Send every other line to the engine as an instruction, together with the
   current selection.
4. Print the generated text and the routing summary.

Local commands:
- `exit` / `quit`: leave the loop.
- `clear memory`: drop every stored exchange.
- `/select <text>`: set the selected text (`/select` alone clears it).
- `/route <text>`: show routing without generating.
- `/history [n]`: newest stored exchanges.
- `/search <term>`: substring search over memory.
- `/stats`: memory counters.
- `/delete <id>`: remove one stored exchange.
- `/export <path>` / `/import <path>`: memory snapshot to/from a file.

Error handling strategy:
- Typed errors print their user-facing message and the loop continues.
- EOF and keyboard interrupts terminate the loop without traceback output.

Side effects:
- Reads and writes the JSON memory file configured by `MEMORY_STORAGE_PATH`.
- Writes to stdout extensively for operator feedback.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
import sys

from textpilot.core.engine import AssistantEngine, build_default_engine
from textpilot.core.errors import TextPilotError, get_user_message
from textpilot.llm.provider_config import LOG_LEVEL


logger = logging.getLogger(__name__)

SEPARATOR = "-" * 60
HISTORY_DEFAULT_COUNT = 10
PREVIEW_CHARS = 80


def _preview(text, limit=PREVIEW_CHARS):
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


# =========================================================
# COMMAND HANDLERS
# =========================================================

def print_routing(routing):
    parts = [f"intent={routing.intent.value}", f"score={routing.score:.2f}", f"via={routing.via}"]
    if routing.output_type:
        parts.append(f"type={routing.output_type}")
    if routing.tones:
        parts.append(f"tones={','.join(routing.tones)}")
    if routing.target_language:
        parts.append(f"language={routing.target_language}")
    print("[" + " ".join(parts) + "]")


def show_history(engine: AssistantEngine, argument: str):
    try:
        count = int(argument) if argument else HISTORY_DEFAULT_COUNT
    except ValueError:
        print("Usage: /history [count]")
        return

    entries = engine.memory.get_recent_conversations(count)
    if not entries:
        print("Memory is empty.")
        return

    for entry in entries:
        marker = " (summarized)" if entry.is_summarized else ""
        print(f"{entry.id}  [{entry.metadata.get('intent', 'unknown')}]{marker}")
        print(f"  Q: {_preview(entry.query)}")
        print(f"  A: {_preview(entry.content)}")


def show_search(engine: AssistantEngine, term: str):
    entries = engine.memory.search_conversations(term)
    if not entries:
        print(f"No stored exchanges match '{term}'.")
        return
    for entry in entries:
        print(f"{entry.id}  Q: {_preview(entry.query)}")


def show_stats(engine: AssistantEngine):
    stats = engine.memory.get_stats()
    print(f"Stored exchanges: {stats['total_conversations']}")
    print(f"Summarized: {stats['summarized_count']}")
    print(f"Compression: {stats['compression_ratio']} ({stats['space_saved']} chars saved)")
    for intent, count in sorted(stats["intent_breakdown"].items()):
        print(f"  {intent}: {count}")


def export_to_file(engine: AssistantEngine, path: str):
    with open(path, "w", encoding="utf-8") as f:
        f.write(engine.memory.export_memory())
    print(f"Exported {len(engine.memory)} exchanges to {path}")


def import_from_file(engine: AssistantEngine, path: str):
    with open(path, "r", encoding="utf-8") as f:
        payload = f.read()
    if engine.memory.import_memory(payload):
        print(f"Imported {len(engine.memory)} exchanges from {path}")
    else:
        print("Import rejected: file is not a valid memory export.")


def handle_command(engine: AssistantEngine, line: str, session: dict) -> bool:
    """Run one local command. Returns False when `line` is not a command."""
    lowered = line.lower()

    if lowered == "clear memory":
        removed = engine.memory.clear_memory()
        print(f"Memory cleared ({removed} exchanges removed).")
        return True

    if not line.startswith("/"):
        return False

    command, _, argument = line.partition(" ")
    command = command.lower()
    argument = argument.strip()

    if command == "/select":
        session["selected_text"] = argument
        print("Selection set." if argument else "Selection cleared.")
    elif command == "/route":
        routing, _ = asyncio.run(engine.classify(argument))
        print_routing(routing)
    elif command == "/history":
        show_history(engine, argument)
    elif command == "/search":
        show_search(engine, argument)
    elif command == "/stats":
        show_stats(engine)
    elif command == "/delete":
        if engine.memory.delete_conversation(argument):
            print(f"Deleted {argument}.")
        else:
            print(f"No stored exchange with id {argument}.")
    elif command == "/export":
        export_to_file(engine, argument or "memory_export.json")
    elif command == "/import":
        import_from_file(engine, argument or "memory_export.json")
    else:
        print(f"Unknown command: {command}")
    return True


# =========================================================
# MAIN
# =========================================================

def main(engine: AssistantEngine | None = None):
    """
    Run the CLI loop.

    Error handling strategy:
    - `TextPilotError` from any command or request prints a readable message.
    - File errors from `/export` and `/import` print the OS message.
    - EOF/interrupt are handled without stack traces.
    """
    logging.basicConfig(level=LOG_LEVEL, stream=sys.stderr)

    engine = engine or build_default_engine()
    session = {"selected_text": ""}

    print("TextPilot started. (Type 'exit' to quit)")
    print(f"Stored exchanges loaded: {len(engine.memory)}")
    print(SEPARATOR)

    while True:

        try:
            line = input("Request: ").strip()

        except EOFError:
            print()
            break

        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not line:
            continue

        if line.lower() in ("exit", "quit"):
            print("Shutting down.")
            break

        try:
            if handle_command(engine, line, session):
                continue

            result = asyncio.run(engine.process_request(line, selected_text=session["selected_text"]))

        except TextPilotError as err:
            print(f"Error: {get_user_message(err)}")
            continue
        except OSError as err:
            print(f"File error: {err}")
            continue

        print()
        print(result.text)
        print()
        print_routing(result.routing)
        print(SEPARATOR)


if __name__ == "__main__":
    main()
