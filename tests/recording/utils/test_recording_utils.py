"""
Recording Utilities Tests

Tests for utility functions showing:
- Filename generation
- Output suffix handling
- File size formatting
- Discarded recording deletion

To run:
    pytest tests/recording/utils/test_recording_utils.py -v
"""

from pathlib import Path

import pytest

from recording.utils.recording_utils import (
    describe_output,
    ensure_mp4_suffix,
    format_file_size,
    generate_filename,
    safe_delete,
)

# =============================================================================
# FILENAME TESTS
# =============================================================================


@pytest.mark.unit
def test_generate_filename(temp_recording_dir):
    """Test generating timestamped filename."""
    filename = generate_filename(temp_recording_dir)

    assert isinstance(filename, Path)
    assert filename.suffix == ".mp4"
    assert filename.parent == temp_recording_dir
    assert filename.name.startswith("recording_")


@pytest.mark.unit
def test_generate_filename_custom_pattern(temp_recording_dir):
    filename = generate_filename(temp_recording_dir, "booth_%Y.mp4")

    assert filename.name.startswith("booth_20")


@pytest.mark.unit
@pytest.mark.parametrize("given,expected", [
    ("take.mp4", "take.mp4"),
    ("take.MP4", "take.MP4"),
    ("take.mkv", "take.mp4"),
    ("take", "take.mp4"),
])
def test_ensure_mp4_suffix(given, expected):
    assert ensure_mp4_suffix(Path(given)).name == expected


# =============================================================================
# FILE SIZE FORMATTING TESTS
# =============================================================================


@pytest.mark.unit
def test_format_file_size_bytes():
    assert format_file_size(0) == "0 B"
    assert format_file_size(512) == "512 B"


@pytest.mark.unit
def test_format_file_size_megabytes():
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"


@pytest.mark.unit
def test_format_file_size_gigabytes():
    assert format_file_size(int(1.5 * 1024 ** 3)) == "1.5 GB"


@pytest.mark.unit
def test_describe_output(temp_video_file):
    assert describe_output(temp_video_file) == "test_recording.mp4 (missing)"

    temp_video_file.write_bytes(b"x" * 2048)

    assert describe_output(temp_video_file) == "test_recording.mp4 (2.0 KB)"


# =============================================================================
# DELETION TESTS
# =============================================================================


@pytest.mark.unit
def test_safe_delete(temp_video_file):
    temp_video_file.write_bytes(b"data")

    assert safe_delete(temp_video_file) is True
    assert not temp_video_file.exists()


@pytest.mark.unit
def test_safe_delete_missing_file(temp_video_file):
    assert safe_delete(temp_video_file) is True


@pytest.mark.unit
def test_safe_delete_failure(temp_recording_dir):
    # A directory cannot be unlinked as a file
    directory = temp_recording_dir / "not_a_file.mp4"
    directory.mkdir()

    assert safe_delete(directory) is False
    assert directory.exists()
