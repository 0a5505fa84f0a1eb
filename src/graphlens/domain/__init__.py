"""Domain layer — graph records, enums, and content parsing.

This layer depends only on stdlib and pydantic.
It must never import from engine, services, infrastructure, commands, or config.
"""
