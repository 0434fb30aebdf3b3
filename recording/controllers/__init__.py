"""
Recording Controllers Package

High-level controllers: capability resolution, encoder selection, the
session timer and the session orchestrator that ties them together.
"""

from recording.controllers.capability_resolver import (
    CapabilityResolver,
    pick_best_capability,
)
from recording.controllers.encoder_selector import EncoderSelector
from recording.controllers.session_orchestrator import SessionOrchestrator
from recording.controllers.session_timer import SessionTimer

# Public API
__all__ = [
    "CapabilityResolver",
    "EncoderSelector",
    "SessionOrchestrator",
    "SessionTimer",
    "pick_best_capability",
]
