"""
Recording Models Package

Data structures shared by the recording controllers.
"""

from recording.models.capture import (
    FRAME_RATE_PRESETS,
    RESOLUTION_PRESETS,
    CaptureCapability,
    ProcessHandle,
    ResolutionPreset,
    SessionConfig,
    find_preset,
    normalize_microphone,
)

__all__ = [
    "CaptureCapability",
    "FRAME_RATE_PRESETS",
    "ProcessHandle",
    "RESOLUTION_PRESETS",
    "ResolutionPreset",
    "SessionConfig",
    "find_preset",
    "normalize_microphone",
]
