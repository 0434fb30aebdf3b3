"""
Recording Utilities

Shared utility functions for recording operations.
Extracted here to follow DRY (Don't Repeat Yourself) principle.
"""

import logging
from datetime import datetime
from pathlib import Path

from config.settings import VIDEO_FILENAME_EXTENSION, VIDEO_FILENAME_PATTERN


def generate_filename(
    base_path: Path,
    format_string: str = VIDEO_FILENAME_PATTERN,
) -> Path:
    """
    Generate timestamped filename for recording.

    Args:
        base_path: Directory where file will be saved
        format_string: strftime format for filename

    Returns:
        Complete file path with timestamp

    Example:
        path = generate_filename(Path("/recordings"))
        # Returns: /recordings/recording_20250930_143022.mp4
    """
    return base_path / datetime.now().strftime(format_string)


def ensure_mp4_suffix(path: Path) -> Path:
    """
    Force the .mp4 extension the engine's faststart finalization expects.

    Example:
        ensure_mp4_suffix(Path("take.mkv")) -> Path("take.mp4")
        ensure_mp4_suffix(Path("take")) -> Path("take.mp4")
    """
    path = Path(path)
    if path.suffix.lower() == VIDEO_FILENAME_EXTENSION:
        return path
    return path.with_suffix(VIDEO_FILENAME_EXTENSION)


def safe_delete(path: Path) -> bool:
    """
    Delete a discarded recording.

    Args:
        path: File to delete

    Returns:
        True if the file is gone afterwards, False if deletion failed

    Example:
        if not safe_delete(Path("retake.mp4")):
            print("File still on disk")
    """
    try:
        path.unlink()
        logging.info(f"Deleted recording: {path.name}")
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logging.error(f"Failed to delete {path}: {e}")
        return False


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "42.3 MB", "1.2 GB")

    Example:
        size = format_file_size(45000000)
        print(size)  # "42.9 MB"
    """
    # Handle negative or zero
    if size_bytes <= 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    else:
        return f"{size:.1f} {units[unit_index]}"


def describe_output(path: Path) -> str:
    """
    One-line summary of a finished recording for logs and status.

    Example:
        describe_output(Path("take.mp4")) -> "take.mp4 (12.3 MB)"
    """
    if not path.exists():
        return f"{path.name} (missing)"
    return f"{path.name} ({format_file_size(path.stat().st_size)})"
