"""LLM integration package.

Layering:
    - `provider_config`: provider/model selection and key resolution.
    - `client`: HTTP transport to the configured provider.
    - `service`: intent-aware text generation on top of the transport.
"""
