"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Machine-specific values (engine path, device names) can be overridden in .env
- Import these settings in modules: from config.settings import SETTLE_DELAY_SECONDS
- Per-booth overrides that operators edit live in config/booth.yaml
  (see config/booth_config.py); nothing here is ever written back
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

# Encoding engine binary. Either an absolute path or a name resolved on PATH.
ENGINE_BINARY_PATH = os.getenv("ENGINE_BINARY_PATH", "ffmpeg")

# Capture input backend passed to the engine with -f.
# Empty = pick by platform (dshow on Windows, avfoundation on macOS, v4l2 elsewhere)
CAPTURE_INPUT_FORMAT = os.getenv("CAPTURE_INPUT_FORMAT", "")

# Audio backend used when the video backend has no combined audio input (v4l2)
AUDIO_INPUT_FORMAT = os.getenv("AUDIO_INPUT_FORMAT", "pulse")

# Engine log level for recording runs
ENGINE_LOG_LEVEL = "warning"

# Live-source input buffering
ENGINE_THREAD_QUEUE_SIZE = 4096
ENGINE_RT_BUFFER_SIZE = "256M"  # dshow only

# Lines of engine output kept for start-failure classification
ENGINE_OUTPUT_HISTORY = 200

# =============================================================================
# SESSION TIMING
# =============================================================================

# Wait after launch before declaring a recording attempt successful
SETTLE_DELAY_SECONDS = float(os.getenv("SETTLE_DELAY_SECONDS", "0.3"))

# Time allowed for the engine to finalize after the quit token
POLITE_STOP_TIMEOUT = float(os.getenv("POLITE_STOP_TIMEOUT", "1.5"))

# Time allowed for the capture device to stop before giving up on it
DEVICE_STOP_TIMEOUT = float(os.getenv("DEVICE_STOP_TIMEOUT", "5.0"))

# Operator countdown before recording starts (0 disables)
COUNTDOWN_SECONDS = int(os.getenv("COUNTDOWN_SECONDS", "3"))

# Auto-stop limit for a recording (seconds, 0 = no limit)
DEFAULT_MAX_DURATION = int(os.getenv("DEFAULT_MAX_DURATION", "60"))

# Timer refresh interval
TIMER_TICK_INTERVAL = 1.0

# =============================================================================
# ENCODER SELECTION
# =============================================================================

# Try NVENC -> QSV -> AMF before the software encoder
PREFER_HARDWARE_ENCODER = os.getenv("PREFER_HARDWARE_ENCODER", "1") == "1"

# Synthetic probe encode: tiny generated pattern, fraction of a second
PROBE_PATTERN = "testsrc2=size=128x128:rate=10"
PROBE_DURATION = 0.2  # seconds of pattern to encode
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "10"))

# Bound for -encoders / -list_options / -list_devices invocations
INTROSPECTION_TIMEOUT = float(os.getenv("INTROSPECTION_TIMEOUT", "10"))

# =============================================================================
# VIDEO / AUDIO ENCODING
# =============================================================================

VIDEO_WIDTH = 1280
VIDEO_HEIGHT = 720
VIDEO_FPS = 30  # Used for GOP sizing when the driver picks the rate
VIDEO_PIXEL_FORMAT = "yuv420p"  # Broad playback compatibility

# Software baseline quality
X264_PRESET = "veryfast"
X264_CRF = 20

# Hardware accelerator quality targets (roughly matching CRF 20)
NVENC_PRESET = "p4"
NVENC_CQ = 21
QSV_PRESET = "veryfast"
QSV_GLOBAL_QUALITY = 21
AMF_QUALITY = "speed"
AMF_QP = 20

# Low-compression fallback (huge files, near-zero CPU)
MJPEG_QSCALE = 3

AUDIO_CODEC = "aac"
AUDIO_BITRATE = "160k"
AUDIO_SAMPLE_RATE = 48000
# Gentle drift correction, keeps the initial A/V offset
AUDIO_RESAMPLE_FILTER = f"aresample=async=1:osr={AUDIO_SAMPLE_RATE}"

# =============================================================================
# OUTPUT
# =============================================================================

OUTPUT_BASE_PATH = Path(os.getenv("OUTPUT_BASE_PATH", "./recordings"))
VIDEO_FILENAME_PREFIX = "recording"
VIDEO_FILENAME_EXTENSION = ".mp4"
VIDEO_FILENAME_PATTERN = (
    f"{VIDEO_FILENAME_PREFIX}_%Y%m%d_%H%M%S{VIDEO_FILENAME_EXTENSION}"
)

# Microphone selector entry meaning "video only"
NO_AUDIO_LABEL = "(No audio)"

# =============================================================================
# LOGGING
# =============================================================================

LOG_DIR = os.getenv("LOG_DIR", "/var/log/videobooth")
LOG_SERVICE_FILE = "booth.log"
LOG_BACKUP_DAYS = 7

# Per-booth YAML overrides
BOOTH_CONFIG_PATH = Path(os.getenv("BOOTH_CONFIG_PATH", "config/booth.yaml"))
