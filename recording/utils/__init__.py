"""
Recording Utilities Package

Shared helpers: engine command line, latest-frame slot, file naming.
"""

from recording.utils.frame_slot import LatestFrameSlot
from recording.utils.recording_utils import (
    describe_output,
    ensure_mp4_suffix,
    format_file_size,
    generate_filename,
    safe_delete,
)

__all__ = [
    "LatestFrameSlot",
    "describe_output",
    "ensure_mp4_suffix",
    "format_file_size",
    "generate_filename",
    "safe_delete",
]
