"""Domain layer — resource graph, references, snapshots, and plans.

This layer depends only on stdlib, pydantic, and NetworkX.
It must never import from services, infrastructure, commands, or config.
"""
