"""
Recording Module

Session orchestration for a video booth: live preview, engine-driven
recording with automatic encoder selection, auto-stop, and review.

Provides automatic detection and graceful fallback between the real FFmpeg
supervisor and mock implementations for testing.

Public API:
    - RecordingFactory: Factory for creating supervisors and orchestrators
    - SessionOrchestrator: Preview / record / stop behind a state machine
    - SessionConfig: Immutable per-attempt recording configuration
    - EncoderCandidate: Encoder enumeration
    - SessionError: Base of the session error taxonomy

Usage:
    from recording import RecordingFactory

    orchestrator = RecordingFactory.create_orchestrator(mode="mock")
    orchestrator.start_preview("mock-camera-0", "HD")
    config = orchestrator.make_config("mock-camera-0", Path("take.mp4"))
    orchestrator.start_recording(config)
"""

from recording.constants import EncoderCandidate
from recording.controllers.session_orchestrator import SessionOrchestrator
from recording.factory import RecordingFactory, create_supervisor
from recording.interfaces.recorder_interface import SessionError
from recording.models.capture import SessionConfig
from recording.utils.recording_utils import generate_filename

__all__ = [
    "EncoderCandidate",
    "RecordingFactory",
    "SessionConfig",
    "SessionError",
    "SessionOrchestrator",
    "create_supervisor",
    "generate_filename",
]
