"""
FFmpeg Engine Introspection

Short-lived engine invocations used around a recording: which encoders are
compiled in, whether an encoder actually works, which devices and modes the
capture backend reports.

Everything here is best-effort diagnostics. Output is line-oriented text
matched by substring/regex; a failed launch, a timeout or unparseable output
means "unknown", never an exception.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from config.settings import (
    ENGINE_BINARY_PATH,
    INTROSPECTION_TIMEOUT,
    PROBE_DURATION,
    PROBE_PATTERN,
    PROBE_TIMEOUT,
)
from recording.constants import (
    HARDWARE_ENCODERS,
    INPUT_FORMAT_AVFOUNDATION,
    INPUT_FORMAT_DSHOW,
    INPUT_FORMAT_V4L2,
    EncoderCandidate,
    default_input_format,
)
from recording.models.capture import SessionConfig

SIZE_PATTERN = re.compile(r"\b(\d{2,5})x(\d{2,5})\b")
FPS_PATTERNS = (
    re.compile(r"fps=(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*fps\b", re.IGNORECASE),
)


def resolve_binary(binary: str) -> Optional[str]:
    """
    Locate the engine executable.

    Args:
        binary: Absolute/relative path or a bare name looked up on PATH

    Returns:
        Usable path, or None if not found

    Example:
        resolve_binary("ffmpeg") -> "/usr/bin/ffmpeg"
    """
    if not binary:
        return None
    path = Path(binary)
    if path.is_file():
        return str(path)
    return shutil.which(binary)


class FFmpegEngine:
    """
    Introspection helper for the encoding engine.

    Usage:
        engine = FFmpegEngine("ffmpeg")
        listing = engine.list_encoders()
        if engine.probe_encoder(EncoderCandidate.NVENC):
            print("NVENC works")
    """

    def __init__(
        self,
        binary: str = ENGINE_BINARY_PATH,
        input_format: Optional[str] = None,
        timeout: float = INTROSPECTION_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
    ):
        """
        Initialize engine helper.

        Args:
            binary: Engine executable used when a call doesn't pass one
            input_format: Capture backend (None = platform default)
            timeout: Bound for listing invocations
            probe_timeout: Bound for a probe encode
        """
        self.logger = logging.getLogger(__name__)
        self.binary = binary
        self.input_format = input_format or default_input_format()
        self.timeout = timeout
        self.probe_timeout = probe_timeout

    def is_available(self, binary: Optional[str] = None) -> bool:
        """Check if the engine executable can be found"""
        return resolve_binary(binary or self.binary) is not None

    def _run(self, args: List[str], timeout: float, binary: Optional[str] = None) -> Optional[subprocess.CompletedProcess]:
        """Run one bounded invocation. None when it could not run to completion."""
        executable = resolve_binary(binary or self.binary)
        if executable is None:
            self.logger.warning(f"Engine not found: {binary or self.binary}")
            return None

        command = [executable, *args]
        self.logger.debug(f"Engine command: {' '.join(command)}")
        try:
            return subprocess.run(
                command,
                check=False,
                capture_output=True,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Engine invocation timed out after {timeout}s: {args}")
        except OSError as e:
            self.logger.warning(f"Engine invocation failed: {e}")
        return None

    def _collect(self, result: Optional[subprocess.CompletedProcess], title: str) -> Optional[str]:
        """Merge stdout/stderr and log every non-blank line"""
        if result is None:
            return None
        text = (result.stdout or "") + (result.stderr or "")
        self.logger.info(f"[engine] {title}:")
        for line in text.splitlines():
            if line.strip():
                self.logger.info(line.rstrip())
        return text

    # =========================================================================
    # ENCODERS
    # =========================================================================

    def list_encoders(self, binary: Optional[str] = None) -> Optional[str]:
        """
        Get the engine's compiled-in encoder listing.

        Returns:
            Raw listing text, or None if it could not be obtained
        """
        result = self._run(["-hide_banner", "-encoders"], self.timeout, binary)
        if result is None:
            return None

        text = (result.stdout or "") + (result.stderr or "")
        for line in text.splitlines():
            if line.strip():
                self.logger.debug(line.rstrip())
        return text

    @staticmethod
    def compiled_accelerators(listing: Optional[str]) -> List[EncoderCandidate]:
        """
        Hardware encoders mentioned in an encoder listing, in probe order.

        Example:
            FFmpegEngine.compiled_accelerators(" V..... h264_qsv ...") -> [EncoderCandidate.QSV]
        """
        if not listing:
            return []
        found = []
        for encoder in HARDWARE_ENCODERS:
            if re.search(rf"\b{re.escape(encoder.codec_name)}\b", listing):
                found.append(encoder)
        return found

    def probe_encoder(self, encoder: EncoderCandidate, binary: Optional[str] = None) -> bool:
        """
        Encode a fraction of a second of a generated pattern with an encoder.

        The exit code is the only verdict: 0 means the encoder is usable.
        """
        args = [
            "-hide_banner", "-loglevel", "error",
            "-f", "lavfi", "-i", PROBE_PATTERN,
            "-t", str(PROBE_DURATION),
            "-c:v", encoder.codec_name,
            "-f", "null", "-",
        ]
        result = self._run(args, self.probe_timeout, binary)
        if result is None:
            return False

        if result.returncode != 0:
            detail = (result.stderr or "").strip().splitlines()
            self.logger.info(
                f"[engine] probe {encoder.codec_name} failed "
                f"(exit {result.returncode}): {detail[-1] if detail else 'no output'}"
            )
            return False
        return True

    # =========================================================================
    # DEVICES AND MODES (diagnostics)
    # =========================================================================

    def list_devices(self, binary: Optional[str] = None) -> Optional[str]:
        """
        Log the capture devices the engine can see.

        Returns:
            Raw listing text, or None if it could not be obtained
        """
        if self.input_format == INPUT_FORMAT_DSHOW:
            args = ["-hide_banner", "-f", "dshow", "-list_devices", "true", "-i", "dummy"]
        elif self.input_format == INPUT_FORMAT_AVFOUNDATION:
            args = ["-hide_banner", "-f", "avfoundation", "-list_devices", "true", "-i", ""]
        else:
            args = ["-hide_banner", "-sources", self.input_format]

        return self._collect(self._run(args, self.timeout, binary), "devices")

    def list_device_modes(self, camera_id: str, binary: Optional[str] = None) -> Optional[str]:
        """
        Log the modes one camera reports.

        Returns:
            Raw listing text, or None (including backends without a listing)
        """
        if self.input_format == INPUT_FORMAT_DSHOW:
            args = ["-hide_banner", "-f", "dshow", "-list_options", "true",
                    "-i", f"video={camera_id}"]
        elif self.input_format == INPUT_FORMAT_V4L2:
            args = ["-hide_banner", "-f", "v4l2", "-list_formats", "all",
                    "-i", camera_id]
        else:
            self.logger.info(f"[engine] mode listing not supported for {self.input_format}")
            return None

        return self._collect(
            self._run(args, self.timeout, binary), f"modes for {camera_id}"
        )

    def check_mode_supported(self, config: SessionConfig) -> Optional[bool]:
        """
        Check the requested size (and rate) against the device's mode listing.

        Returns:
            True/False when the listing answers the question, None if unknown
        """
        listing = self.list_device_modes(config.camera_id, config.engine_binary_path)
        return mode_listed(listing, config.width, config.height, config.frame_rate)


def mode_listed(
    listing: Optional[str],
    width: int,
    height: int,
    frame_rate: Optional[int] = None,
) -> Optional[bool]:
    """
    Search a mode listing for WxH (and a frame rate).

    Returns:
        None when the listing is missing or has no sizes at all (unknown),
        otherwise whether the mode appears. Lines that mention the size but
        carry no rate information count as a match for any rate.

    Example:
        mode_listed("min s=1280x720 fps=30", 1280, 720, 30) -> True
    """
    if not listing or not SIZE_PATTERN.search(listing):
        return None

    size = f"{width}x{height}"
    size_lines = [
        line for line in listing.splitlines()
        if any(f"{w}x{h}" == size for w, h in SIZE_PATTERN.findall(line))
    ]
    if not size_lines:
        return False
    if frame_rate is None:
        return True

    rates = []
    for line in size_lines:
        for pattern in FPS_PATTERNS:
            rates.extend(float(value) for value in pattern.findall(line))
    if not rates:
        return True
    return any(abs(rate - frame_rate) < 0.5 for rate in rates)
