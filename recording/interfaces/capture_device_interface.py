"""
Capture Device Interface

Contract for the capture device adapter that feeds the live preview.

The adapter itself (DirectShow, V4L2, a camera SDK...) lives outside this
project. The orchestrator only needs device enumeration, the capability list,
capability selection, start/stop, and a frame callback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from recording.constants import DeviceKind
    from recording.models.capture import CaptureCapability

# Frame callback: the frame reference is only valid during the call,
# receivers must copy anything they keep.
FrameCallback = Callable[[Any], None]


@dataclass(frozen=True)
class DeviceInfo:
    """One enumerated device"""

    device_id: str
    display_name: str


class CaptureDeviceHandle(ABC):
    """
    An opened capture device.

    Only one handle is open at a time; the orchestrator owns it.
    """

    @abstractmethod
    def capabilities(self) -> List["CaptureCapability"]:
        """
        Get the modes the device advertises.

        Returns:
            Capability list, possibly empty
        """
        pass

    @abstractmethod
    def set_capability(self, capability: "CaptureCapability") -> None:
        """
        Select the capture mode. Must be called before start().
        """
        pass

    @abstractmethod
    def set_frame_callback(self, callback: Optional[FrameCallback]) -> None:
        """
        Register (or clear with None) the frame delivery callback.

        The callback runs on the adapter's own thread.
        """
        pass

    @abstractmethod
    def start(self) -> None:
        """
        Start frame delivery.

        Raises:
            PreviewError: Device could not be started
        """
        pass

    @abstractmethod
    def signal_stop(self) -> None:
        """
        Ask the device to stop. Returns immediately.
        """
        pass

    @abstractmethod
    def wait_for_stop(self) -> None:
        """
        Block until the device has fully stopped.

        May block for a long time on misbehaving drivers, so callers run it
        on a worker thread with a timeout.
        """
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """
        Check if frames are being delivered.
        """
        pass


class CaptureDeviceInterface(ABC):
    """
    Abstract base class for capture device adapters.
    """

    @abstractmethod
    def list_devices(self, kind: "DeviceKind") -> List[DeviceInfo]:
        """
        Enumerate devices of one kind, in adapter order.

        Example:
            cams = adapter.list_devices(DeviceKind.VIDEO)
        """
        pass

    @abstractmethod
    def open_device(self, device_id: str) -> CaptureDeviceHandle:
        """
        Open a device by id.

        Raises:
            PreviewError: Unknown or unavailable device
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the adapter can enumerate and open devices.
        """
        pass
