"""Game domain services: dice, scorecard, turns and the orchestrator.

This package contains the pure rules engine that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics. Only ``orchestrator`` talks to a store.
"""
