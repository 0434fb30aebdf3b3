"""
Recording Implementations Package

Exposes concrete implementations of recording interfaces.
"""

from recording.implementations.ffmpeg_engine import FFmpegEngine
from recording.implementations.ffmpeg_supervisor import RecordingProcessSupervisor
from recording.implementations.mock_device import MockCaptureDevice, MockDeviceHandle
from recording.implementations.mock_supervisor import MockSupervisor

# Public API
__all__ = [
    "FFmpegEngine",
    "MockCaptureDevice",
    "MockDeviceHandle",
    "MockSupervisor",
    "RecordingProcessSupervisor",
]
