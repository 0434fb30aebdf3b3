"""
Mock Capture Device Adapter

In-memory capture device for tests and the CLI demo mode.
Frames are delivered only when the test calls emit_frame(), so preview
behavior is fully deterministic.

This is a "Fake" (test double) - it has working logic but no real hardware.
"""

import logging
import threading
from typing import Dict, List, Optional

from recording.constants import DeviceKind
from recording.interfaces.capture_device_interface import (
    CaptureDeviceHandle,
    CaptureDeviceInterface,
    DeviceInfo,
    FrameCallback,
)
from recording.interfaces.recorder_interface import PreviewError
from recording.models.capture import CaptureCapability

DEFAULT_CAMERAS = [DeviceInfo("mock-camera-0", "Mock Camera")]
DEFAULT_MICROPHONES = [DeviceInfo("mock-mic-0", "Mock Microphone")]
DEFAULT_CAPABILITIES = [
    CaptureCapability(1920, 1080, 30),
    CaptureCapability(1280, 720, 60),
    CaptureCapability(1280, 720, 30),
    CaptureCapability(640, 480, 30),
]


class MockFrame:
    """Stand-in frame object. close() marks it disposed."""

    def __init__(self, sequence: int, data: bytes = b""):
        self.sequence = sequence
        self.data = data
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def __copy__(self) -> "MockFrame":
        return MockFrame(self.sequence, bytes(self.data))


class MockDeviceHandle(CaptureDeviceHandle):
    """
    One opened mock device.

    Usage:
        handle = adapter.open_device("mock-camera-0")
        handle.set_frame_callback(slot.put)
        handle.start()
        handle.emit_frame()
    """

    def __init__(self, device_id: str, capabilities: List[CaptureCapability]):
        self.logger = logging.getLogger(__name__)
        self.device_id = device_id
        self._capabilities = list(capabilities)

        self.selected_capability: Optional[CaptureCapability] = None
        self._callback: Optional[FrameCallback] = None
        self._running = False
        self._frames_emitted = 0

        # Test scenario configuration
        self.fail_on_start = False
        self.hang_on_stop = False
        self._hang_released = threading.Event()

        self.start_calls = 0
        self.stop_signals = 0

    def capabilities(self) -> List[CaptureCapability]:
        return list(self._capabilities)

    def set_capability(self, capability: CaptureCapability) -> None:
        self.selected_capability = capability
        self.logger.debug(f"[MOCK] {self.device_id} capability set to {capability}")

    def set_frame_callback(self, callback: Optional[FrameCallback]) -> None:
        self._callback = callback

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_on_start:
            raise PreviewError(f"Simulated start failure on {self.device_id}")
        self._running = True
        self.logger.info(f"[MOCK] {self.device_id} started")

    def signal_stop(self) -> None:
        self.stop_signals += 1
        self._running = False
        self.logger.info(f"[MOCK] {self.device_id} stop signaled")

    def wait_for_stop(self) -> None:
        if self.hang_on_stop:
            # Blocks until the test lets go
            self._hang_released.wait()

    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # TESTING HELPER METHODS
    # =========================================================================

    def emit_frame(self, data: bytes = b"frame") -> bool:
        """
        Deliver one frame through the registered callback.

        Returns:
            True if a callback received it
        """
        if not self._running or self._callback is None:
            return False
        self._frames_emitted += 1
        frame = MockFrame(self._frames_emitted, data)
        self._callback(frame)
        # Adapter reclaims its buffer once the callback returns
        frame.close()
        return True

    def release_hang(self) -> None:
        self._hang_released.set()

    @property
    def frames_emitted(self) -> int:
        return self._frames_emitted


class MockCaptureDevice(CaptureDeviceInterface):
    """
    Mock capture device adapter.

    Usage:
        adapter = MockCaptureDevice()
        cams = adapter.list_devices(DeviceKind.VIDEO)
        handle = adapter.open_device(cams[0].device_id)
    """

    def __init__(
        self,
        cameras: Optional[List[DeviceInfo]] = None,
        microphones: Optional[List[DeviceInfo]] = None,
        capabilities: Optional[List[CaptureCapability]] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self._devices: Dict[DeviceKind, List[DeviceInfo]] = {
            DeviceKind.VIDEO: list(DEFAULT_CAMERAS if cameras is None else cameras),
            DeviceKind.AUDIO: list(
                DEFAULT_MICROPHONES if microphones is None else microphones
            ),
        }
        self._capabilities = list(
            DEFAULT_CAPABILITIES if capabilities is None else capabilities
        )

        self.handles: List[MockDeviceHandle] = []
        self._fail_open = False
        self._fail_start = False
        self._hang_stop = False

        self.logger.info("Mock Capture Device initialized")

    def list_devices(self, kind: DeviceKind) -> List[DeviceInfo]:
        return list(self._devices.get(kind, []))

    def open_device(self, device_id: str) -> MockDeviceHandle:
        known = {d.device_id for d in self._devices[DeviceKind.VIDEO]}
        if self._fail_open or device_id not in known:
            raise PreviewError(f"Cannot open capture device: {device_id}")

        handle = MockDeviceHandle(device_id, self._capabilities)
        handle.fail_on_start = self._fail_start
        handle.hang_on_stop = self._hang_stop
        self.handles.append(handle)
        self.logger.info(f"[MOCK] Opened {device_id}")
        return handle

    def is_available(self) -> bool:
        return True

    @property
    def last_handle(self) -> Optional[MockDeviceHandle]:
        return self.handles[-1] if self.handles else None

    # =========================================================================
    # TESTING HELPER METHODS
    # =========================================================================

    def simulate_open_failure(self) -> None:
        self._fail_open = True

    def simulate_start_failure(self) -> None:
        self._fail_start = True

    def simulate_hung_stop(self) -> None:
        """Handles opened afterwards block in wait_for_stop() until released"""
        self._hang_stop = True

    def reset_test_config(self) -> None:
        self._fail_open = False
        self._fail_start = False
        self._hang_stop = False
