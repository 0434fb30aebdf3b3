"""
Capture Models

Data classes describing what a capture device can do, how a preset bucket
filters it, and the immutable per-attempt recording configuration.
"""

import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from config.settings import ENGINE_BINARY_PATH, NO_AUDIO_LABEL
from recording.constants import EncoderCandidate
from recording.interfaces.recorder_interface import InvalidSelection


@dataclass(frozen=True)
class CaptureCapability:
    """A device-advertised (width, height, frame rate) triple"""

    width: int
    height: int
    frame_rate: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}@{self.frame_rate}"


@dataclass(frozen=True)
class ResolutionPreset:
    """
    Labeled resolution bucket used to filter capabilities.

    Bounds are inclusive on both ends.
    """

    label: str
    min_width: int
    min_height: int
    max_width: int
    max_height: int

    def contains(self, capability: CaptureCapability) -> bool:
        return (
            self.min_width <= capability.width <= self.max_width
            and self.min_height <= capability.height <= self.max_height
        )

    def __str__(self) -> str:
        return self.label


UNBOUNDED = sys.maxsize

RESOLUTION_PRESETS: Tuple[ResolutionPreset, ...] = (
    ResolutionPreset("4K (3840x2160)", 3800, 2100, 4096, 2304),
    ResolutionPreset("2K/QHD (2560x1440)", 2500, 1400, 2700, 1520),
    ResolutionPreset("Full HD (1920x1080)", 1880, 1050, 2000, 1120),
    ResolutionPreset("HD (1280x720)", 1240, 700, 1300, 760),
    ResolutionPreset("SD (640x480)", 620, 460, 660, 520),
    # Catch-all, must stay last
    ResolutionPreset("Best available", 0, 0, UNBOUNDED, UNBOUNDED),
)

DEFAULT_PRESET_LABEL = "HD"

FRAME_RATE_PRESETS: Tuple[int, ...] = (60, 30, 25, 15)


def find_preset(label: Optional[str]) -> ResolutionPreset:
    """
    Look up a preset by label prefix (case-insensitive).

    Falls back to the catch-all preset when nothing matches.

    Example:
        find_preset("full hd").label -> "Full HD (1920x1080)"
    """
    if label:
        wanted = label.strip().lower()
        for preset in RESOLUTION_PRESETS:
            if preset.label.lower().startswith(wanted):
                return preset
    return RESOLUTION_PRESETS[-1]


def normalize_microphone(microphone_id: Optional[str]) -> Optional[str]:
    """Empty selection or the "(No audio)" entry means a video-only session"""
    if microphone_id is None:
        return None
    microphone_id = microphone_id.strip()
    if not microphone_id or microphone_id.lower() == NO_AUDIO_LABEL.lower():
        return None
    return microphone_id


@dataclass(frozen=True)
class SessionConfig:
    """
    Everything one recording attempt needs.

    Built once per attempt and never modified; a retry reuses the same
    instance, a new attempt builds a new one.
    """

    camera_id: str
    output_path: Path
    width: int
    height: int
    microphone_id: Optional[str] = None  # None = no audio
    frame_rate: Optional[int] = None  # None = driver default
    engine_binary_path: str = ENGINE_BINARY_PATH
    prefer_hardware_encoder: bool = True
    validate_mode_before_start: bool = False
    use_low_compression_fallback_codec: bool = False
    input_format: str = ""  # "" = platform default

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        if not isinstance(self.output_path, Path):
            object.__setattr__(self, "output_path", Path(self.output_path))
        object.__setattr__(
            self, "microphone_id", normalize_microphone(self.microphone_id)
        )

    @property
    def has_audio(self) -> bool:
        return self.microphone_id is not None

    def validate(self) -> None:
        """
        Reject selections that can never start.

        Raises:
            InvalidSelection: No camera chosen or nonsensical size/rate
        """
        if not self.camera_id or not self.camera_id.strip():
            raise InvalidSelection("Select a camera.")
        if self.width <= 0 or self.height <= 0:
            raise InvalidSelection(
                f"Invalid capture size {self.width}x{self.height}"
            )
        if self.frame_rate is not None and self.frame_rate <= 0:
            raise InvalidSelection(f"Invalid frame rate {self.frame_rate}")


@dataclass(frozen=True)
class ProcessHandle:
    """Running engine process, as handed out by the supervisor"""

    pid: int
    output_path: Path
    encoder: EncoderCandidate
    started_at: datetime = field(default_factory=datetime.now)
