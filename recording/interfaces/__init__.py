"""
Recording Interfaces Package

Contracts for the engine supervisor, the capture device adapter and the
review gate, plus the session error taxonomy.
"""

from recording.interfaces.capture_device_interface import (
    CaptureDeviceHandle,
    CaptureDeviceInterface,
    DeviceInfo,
)
from recording.interfaces.recorder_interface import (
    AlreadyRunning,
    DeviceContentionFailure,
    EngineNotFound,
    InvalidSelection,
    PreviewError,
    ProcessStartFailure,
    RecorderInterface,
    SessionError,
    StopTimeout,
    UnexpectedProcessExit,
)
from recording.interfaces.review_gate_interface import (
    AutoReviewGate,
    ConsoleReviewGate,
    ReviewGateInterface,
)

# Public API
__all__ = [
    "AlreadyRunning",
    "AutoReviewGate",
    "CaptureDeviceHandle",
    "CaptureDeviceInterface",
    "ConsoleReviewGate",
    "DeviceContentionFailure",
    "DeviceInfo",
    "EngineNotFound",
    "InvalidSelection",
    "PreviewError",
    "ProcessStartFailure",
    "RecorderInterface",
    "ReviewGateInterface",
    "SessionError",
    "StopTimeout",
    "UnexpectedProcessExit",
]
