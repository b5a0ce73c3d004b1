"""Core orchestration package.

Architectural role:
    Sits between the API/CLI entrypoints and the lower-level subsystems
    (routing, memory, prompting, and LLM adapters).

Composition:
    - `engine`: Request pipeline (route -> context -> generate -> remember).
    - `routing_types`: Intent enum, routing result and normalized request variants.
    - `errors`: Typed exception hierarchy shared by all layers.
"""
