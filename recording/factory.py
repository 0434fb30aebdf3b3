"""
Recording Factory

Factory pattern for creating recording implementations.
Automatically selects the real FFmpeg supervisor or the mock based on
availability, and wires a complete SessionOrchestrator.

Single place to decide implementation.
"""

import logging
from typing import Callable, Literal, Optional

from config.booth_config import BoothConfig
from recording.controllers.encoder_selector import EncoderSelector
from recording.controllers.session_orchestrator import SessionOrchestrator
from recording.controllers.session_timer import SessionTimer
from recording.implementations.ffmpeg_engine import FFmpegEngine
from recording.implementations.ffmpeg_supervisor import RecordingProcessSupervisor
from recording.implementations.mock_device import MockCaptureDevice
from recording.implementations.mock_supervisor import MockSupervisor
from recording.interfaces.capture_device_interface import CaptureDeviceInterface
from recording.interfaces.recorder_interface import RecorderInterface
from recording.interfaces.review_gate_interface import ReviewGateInterface

# Type alias for better type hints
RecorderMode = Literal["auto", "real", "mock"]


class RecordingFactory:
    """
    Factory for creating recording implementations.

    Usage:
        # Auto-detect (uses FFmpeg if available, mock otherwise)
        supervisor = RecordingFactory.create_supervisor()

        # Force mock mode (useful for testing)
        supervisor = RecordingFactory.create_supervisor(mode="mock")

        # Force real engine (raises error if not available)
        supervisor = RecordingFactory.create_supervisor(mode="real")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_supervisor(
        cls,
        mode: RecorderMode = "auto",
        input_format: Optional[str] = None,
        log_sink: Optional[Callable[[str], None]] = None,
    ) -> RecorderInterface:
        """
        Create an engine supervisor.

        Args:
            mode: "auto" (detect), "real" (force FFmpeg), "mock" (force mock)
            input_format: Capture backend override for the real supervisor
            log_sink: Receives every engine output line (real supervisor)

        Returns:
            RecorderInterface implementation

        Raises:
            RuntimeError: If mode="real" but the engine is not available
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Supervisor")
            return MockSupervisor()

        supervisor = RecordingProcessSupervisor(
            input_format=input_format, log_sink=log_sink
        )
        if supervisor.is_available():
            cls._logger.info(
                f"Creating FFmpeg Supervisor ({'forced' if mode == 'real' else 'auto-detected'})"
            )
            return supervisor

        if mode == "real":
            raise RuntimeError("Real engine requested but FFmpeg is not available")

        cls._logger.warning("FFmpeg not available, using Mock Supervisor")
        return MockSupervisor()

    @classmethod
    def create_device_adapter(
        cls,
        mode: RecorderMode = "auto",
        adapter: Optional[CaptureDeviceInterface] = None,
    ) -> CaptureDeviceInterface:
        """
        Create (or pass through) the capture device adapter.

        The real adapter is platform code supplied by the host application;
        without one, preview runs on the mock adapter.

        Raises:
            RuntimeError: If mode="real" and no usable adapter was supplied
        """
        if mode != "mock" and adapter is not None and adapter.is_available():
            return adapter

        if mode == "real":
            raise RuntimeError("Real capture adapter requested but none is available")

        if mode == "auto":
            cls._logger.warning("No capture device adapter supplied, using Mock Capture Device")
        return MockCaptureDevice()

    @classmethod
    def create_orchestrator(
        cls,
        mode: RecorderMode = "auto",
        config: Optional[BoothConfig] = None,
        review_gate: Optional[ReviewGateInterface] = None,
        adapter: Optional[CaptureDeviceInterface] = None,
        log_sink: Optional[Callable[[str], None]] = None,
    ) -> SessionOrchestrator:
        """
        Wire a SessionOrchestrator from booth configuration.

        Example:
            orchestrator = RecordingFactory.create_orchestrator(mode="mock")
        """
        config = config or BoothConfig()
        input_format = config.capture_input_format or None

        engine = FFmpegEngine(
            binary=config.engine_binary_path, input_format=input_format
        )
        timer = SessionTimer()
        orchestrator = SessionOrchestrator(
            device_adapter=cls.create_device_adapter(mode, adapter),
            supervisor=cls.create_supervisor(mode, input_format, log_sink),
            encoder_selector=EncoderSelector(engine),
            engine=engine,
            timer=timer,
            review_gate=review_gate,
            settle_delay=config.settle_delay,
            polite_timeout=config.polite_stop_timeout,
            countdown_seconds=config.countdown_seconds,
        )
        orchestrator.set_max_duration(config.max_duration)
        return orchestrator


# Convenience functions for quick creation

def create_supervisor(force_mock: bool = False) -> RecorderInterface:
    """
    Quick supervisor creation with auto-detection.

    Example:
        supervisor = create_supervisor(force_mock=True)
    """
    return RecordingFactory.create_supervisor(mode="mock" if force_mock else "auto")
