"""
Recording Constants

Enums, engine argument tables and small helpers for the recording system.

Why separate constants?
- Easy to tune encoder behavior
- Clear documentation of system limits
- Type safety with enums
- Single source of truth

Note: Tunable values (timeouts, quality targets, paths) live in
config/settings.py. This file holds enums, engine-specific tables and
utility functions built on top of them.
"""

import sys
from enum import Enum
from typing import List, Tuple

from config.settings import (
    AMF_QP,
    AMF_QUALITY,
    CAPTURE_INPUT_FORMAT,
    MJPEG_QSCALE,
    NVENC_CQ,
    NVENC_PRESET,
    QSV_GLOBAL_QUALITY,
    QSV_PRESET,
    X264_CRF,
    X264_PRESET,
)

# =============================================================================
# ENGINE PROTOCOL
# =============================================================================

# Written to the engine's stdin to request a clean finish (trailer + faststart)
ENGINE_QUIT_TOKEN = "q"

# Input descriptors
INPUT_FORMAT_DSHOW = "dshow"
INPUT_FORMAT_V4L2 = "v4l2"
INPUT_FORMAT_AVFOUNDATION = "avfoundation"

# Engine output fragments meaning the capture device could not be opened
# because something else holds it
DEVICE_CONTENTION_MARKERS = (
    "device or resource busy",
    "could not run graph",
    "already in use",
    "i/o error",
    "error opening input",
    "could not set video options",
)

# Engine output fragments worth surfacing at WARNING level
ENGINE_ERROR_MARKERS = (
    "error",
    "failed",
    "invalid",
    "cannot",
    "could not",
)


# =============================================================================
# SESSION STATE / DEVICES
# =============================================================================


class DeviceKind(Enum):
    """Capture device categories reported by the device adapter"""

    VIDEO = "video"
    AUDIO = "audio"


# =============================================================================
# ENCODERS
# =============================================================================


class EncoderCandidate(Enum):
    """
    Video encoders the engine can be asked to use.

    Preference order when hardware is preferred: NVENC -> QSV -> AMF,
    then the X264 software baseline. MJPEG is the low-compression fallback
    (huge files, near-zero CPU) and is only used when explicitly requested.
    """

    NVENC = "h264_nvenc"  # Accelerator A (NVIDIA)
    QSV = "h264_qsv"  # Accelerator B (Intel Quick Sync)
    AMF = "h264_amf"  # Accelerator C (AMD)
    X264 = "libx264"  # Software baseline
    MJPEG = "mjpeg"  # Low-compression fallback

    @property
    def codec_name(self) -> str:
        return self.value

    def codec_args(self) -> List[str]:
        """Codec / quality / preset triple for the engine command line"""
        if self is EncoderCandidate.NVENC:
            return ["-c:v", self.value, "-preset", NVENC_PRESET,
                    "-rc", "vbr", "-cq", str(NVENC_CQ)]
        if self is EncoderCandidate.QSV:
            return ["-c:v", self.value, "-preset", QSV_PRESET,
                    "-global_quality", str(QSV_GLOBAL_QUALITY)]
        if self is EncoderCandidate.AMF:
            return ["-c:v", self.value, "-quality", AMF_QUALITY,
                    "-rc", "cqp", "-qp_i", str(AMF_QP), "-qp_p", str(AMF_QP)]
        if self is EncoderCandidate.MJPEG:
            return ["-c:v", self.value, "-q:v", str(MJPEG_QSCALE)]
        return ["-c:v", self.value, "-preset", X264_PRESET, "-crf", str(X264_CRF)]


# Probe order for hardware accelerators
HARDWARE_ENCODERS: Tuple[EncoderCandidate, ...] = (
    EncoderCandidate.NVENC,
    EncoderCandidate.QSV,
    EncoderCandidate.AMF,
)

# Accelerators worth probing per host platform (sys.platform prefix)
# macOS has none of these vendor encoders.
ACCELERATOR_PLATFORMS = {
    EncoderCandidate.NVENC: ("win32", "linux"),
    EncoderCandidate.QSV: ("win32", "linux"),
    EncoderCandidate.AMF: ("win32", "linux"),
}


def is_relevant_accelerator(encoder: EncoderCandidate, platform: str = sys.platform) -> bool:
    """
    Check if a hardware encoder makes sense on this machine class.

    Args:
        encoder: Candidate encoder
        platform: sys.platform style string

    Returns:
        True if the accelerator should be probed on this platform
    """
    platforms = ACCELERATOR_PLATFORMS.get(encoder, ())
    return any(platform.startswith(p) for p in platforms)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def default_input_format(platform: str = sys.platform) -> str:
    """
    Capture backend for this platform, honoring the CAPTURE_INPUT_FORMAT override.

    Example:
        default_input_format("win32") -> "dshow"
    """
    if CAPTURE_INPUT_FORMAT:
        return CAPTURE_INPUT_FORMAT
    if platform.startswith("win"):
        return INPUT_FORMAT_DSHOW
    if platform == "darwin":
        return INPUT_FORMAT_AVFOUNDATION
    return INPUT_FORMAT_V4L2


def format_elapsed(seconds: float) -> str:
    """
    Format elapsed recording time for the status display.

    Args:
        seconds: Elapsed seconds

    Returns:
        "mm:ss", or "hh:mm:ss" once an hour has elapsed

    Example:
        format_elapsed(75) -> "01:15"
        format_elapsed(3725) -> "01:02:05"
    """
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours >= 1:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
