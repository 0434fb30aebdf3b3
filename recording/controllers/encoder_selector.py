"""
Encoder Selector

Chooses the video encoder for a recording attempt.

Hardware accelerators are only trusted after a short probe encode succeeds;
the encoder listing alone says what was compiled in, not what works on this
machine (missing driver, no GPU, busy sessions...). The software baseline is
always the last resort.
"""

import logging
import sys
from typing import List

from recording.constants import (
    EncoderCandidate,
    is_relevant_accelerator,
)
from recording.implementations.ffmpeg_engine import FFmpegEngine


class EncoderSelector:
    """
    Picks NVENC -> QSV -> AMF -> x264, or MJPEG when asked for it.

    Usage:
        selector = EncoderSelector(FFmpegEngine())
        encoder = selector.select("ffmpeg", prefer_hardware=True)
    """

    def __init__(self, engine: FFmpegEngine, platform: str = sys.platform):
        """
        Initialize selector.

        Args:
            engine: Introspection helper used for listing and probing
            platform: sys.platform style string used to skip irrelevant accelerators
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.platform = platform

    def candidates(self, engine_binary_path: str) -> List[EncoderCandidate]:
        """Compiled-in accelerators relevant to this platform, in probe order"""
        listing = self.engine.list_encoders(engine_binary_path)
        if listing is None:
            self.logger.warning("Encoder listing unavailable, capability unknown")
            return []

        compiled = self.engine.compiled_accelerators(listing)
        return [e for e in compiled if is_relevant_accelerator(e, self.platform)]

    def select(
        self,
        engine_binary_path: str,
        prefer_hardware: bool,
        use_low_compression: bool = False,
    ) -> EncoderCandidate:
        """
        Choose the encoder for one attempt.

        Args:
            engine_binary_path: Engine executable to list/probe with
            prefer_hardware: Try accelerators before the software baseline
            use_low_compression: Use the MJPEG fallback unconditionally

        Returns:
            Chosen encoder (never None)
        """
        if use_low_compression:
            self.logger.info(f"Encoder: {EncoderCandidate.MJPEG.codec_name} (low compression requested)")
            return EncoderCandidate.MJPEG

        if not prefer_hardware:
            self.logger.info(f"Encoder: {EncoderCandidate.X264.codec_name} (hardware not preferred)")
            return EncoderCandidate.X264

        for encoder in self.candidates(engine_binary_path):
            self.logger.info(f"Probing {encoder.codec_name}...")
            if self.engine.probe_encoder(encoder, engine_binary_path):
                self.logger.info(f"Encoder: {encoder.codec_name} (probe passed)")
                return encoder

        self.logger.info(f"Encoder: {EncoderCandidate.X264.codec_name} (software fallback)")
        return EncoderCandidate.X264
