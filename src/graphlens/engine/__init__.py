"""Engine layer — pure graph computations over node/link records.

This layer depends on the domain layer, config models, networkx, and
structlog. It must never import from services, commands, or output.
Every function here is synchronous and side-effect free apart from the
layout engine's pin cache.
"""
