"""
Engine Command Builder

Turns a SessionConfig plus the chosen encoder into the engine's argument list.
Kept separate from the supervisor so the exact command line can be tested
without launching anything.
"""

from pathlib import Path
from typing import List, Optional

from config.settings import (
    AUDIO_BITRATE,
    AUDIO_CODEC,
    AUDIO_INPUT_FORMAT,
    AUDIO_RESAMPLE_FILTER,
    ENGINE_LOG_LEVEL,
    ENGINE_RT_BUFFER_SIZE,
    ENGINE_THREAD_QUEUE_SIZE,
    VIDEO_FPS,
    VIDEO_PIXEL_FORMAT,
)
from recording.constants import (
    INPUT_FORMAT_AVFOUNDATION,
    INPUT_FORMAT_DSHOW,
    EncoderCandidate,
    default_input_format,
)
from recording.models.capture import SessionConfig
from recording.utils.recording_utils import ensure_mp4_suffix

MIN_DIMENSION = 16
MIN_GOP = 2


def effective_frame_rate(config: SessionConfig) -> int:
    """Requested rate, or the nominal rate when the driver chooses"""
    return max(1, config.frame_rate or VIDEO_FPS)


def keyframe_interval(config: SessionConfig) -> int:
    """GOP length: two seconds of frames"""
    return max(MIN_GOP, effective_frame_rate(config) * 2)


def _live_input_options(input_format: str) -> List[str]:
    options = ["-f", input_format]
    if input_format == INPUT_FORMAT_DSHOW:
        options += ["-rtbufsize", ENGINE_RT_BUFFER_SIZE]
    options += [
        "-thread_queue_size", str(ENGINE_THREAD_QUEUE_SIZE),
        "-use_wallclock_as_timestamps", "1",
    ]
    return options


def _capture_inputs(config: SessionConfig, input_format: str) -> List[str]:
    """
    Input section of the command: size, optional rate, device descriptors.

    dshow and avfoundation take video and audio as one combined input;
    v4l2 needs a second, separate audio input.
    """
    width = max(MIN_DIMENSION, config.width)
    height = max(MIN_DIMENSION, config.height)

    args = _live_input_options(input_format)
    args += ["-video_size", f"{width}x{height}"]
    if config.frame_rate:
        args += ["-framerate", str(config.frame_rate)]

    if input_format == INPUT_FORMAT_DSHOW:
        source = f"video={config.camera_id}"
        if config.has_audio:
            source += f":audio={config.microphone_id}"
        return args + ["-i", source]

    if input_format == INPUT_FORMAT_AVFOUNDATION:
        source = config.camera_id
        source += f":{config.microphone_id}" if config.has_audio else ":none"
        return args + ["-i", source]

    args += ["-i", config.camera_id]
    if config.has_audio:
        args += [
            "-f", AUDIO_INPUT_FORMAT,
            "-thread_queue_size", str(ENGINE_THREAD_QUEUE_SIZE),
            "-use_wallclock_as_timestamps", "1",
            "-i", config.microphone_id,
        ]
    return args


def build_engine_command(
    config: SessionConfig,
    encoder: EncoderCandidate,
    binary: Optional[str] = None,
    input_format: Optional[str] = None,
) -> List[str]:
    """
    Generate the engine command for one recording attempt.

    Video timestamps are kept as captured (variable frame rate) so long
    recordings do not drift against audio; audio gets gentle resampling.
    The output is finalized with faststart for progressive playback.

    Args:
        config: Attempt configuration
        encoder: Encoder chosen by EncoderSelector
        binary: Resolved engine executable (defaults to config value)
        input_format: Capture backend (defaults to config, then platform)

    Returns:
        List of command arguments for subprocess

    Example:
        cmd = build_engine_command(config, EncoderCandidate.X264)
        subprocess.Popen(cmd, stdin=subprocess.PIPE)
    """
    input_format = input_format or config.input_format or default_input_format()
    output_path: Path = ensure_mp4_suffix(config.output_path)

    command = [
        binary or config.engine_binary_path,
        "-hide_banner",
        "-loglevel", ENGINE_LOG_LEVEL,
        "-fflags", "+genpts",  # monotonic timestamps for live sources
    ]
    command += _capture_inputs(config, input_format)

    command += [
        "-fps_mode", "vfr",
        "-vf", f"format={VIDEO_PIXEL_FORMAT}",
    ]
    if config.has_audio:
        command += ["-af", AUDIO_RESAMPLE_FILTER]

    command += encoder.codec_args()
    command += ["-g", str(keyframe_interval(config))]

    if config.has_audio:
        command += ["-c:a", AUDIO_CODEC, "-b:a", AUDIO_BITRATE]

    command += ["-movflags", "+faststart", "-y", str(output_path)]
    return command
