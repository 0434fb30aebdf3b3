"""
FFmpeg Engine Introspection Tests

Listing, probing and mode checks, run against the stand-in engine script.
mode_listed() is tested on literal listings.

To run:
    pytest tests/recording/implementations/test_ffmpeg_engine.py -v
"""

from dataclasses import replace

import pytest

from recording.constants import EncoderCandidate
from recording.implementations.ffmpeg_engine import (
    FFmpegEngine,
    mode_listed,
    resolve_binary,
)

DSHOW_OPTIONS = "\n".join([
    '[dshow @ 0x1] DirectShow video device options (from video devices)',
    '[dshow @ 0x1]   vcodec=mjpeg  min s=1920x1080 fps=30 max s=1920x1080 fps=30',
    '[dshow @ 0x1]   vcodec=mjpeg  min s=1280x720 fps=60 max s=1280x720 fps=60',
])

V4L2_FORMATS = "[video4linux2,v4l2 @ 0x1] Raw : yuyv422 : YUYV 4:2:2 : 640x480 1280x720"


# =============================================================================
# BINARY RESOLUTION
# =============================================================================


@pytest.mark.unit
def test_resolve_binary_accepts_file_path(fake_engine):
    assert resolve_binary(str(fake_engine)) == str(fake_engine)


@pytest.mark.unit
def test_resolve_binary_missing(tmp_path):
    assert resolve_binary(str(tmp_path / "nope")) is None
    assert resolve_binary("") is None


@pytest.mark.unit
def test_missing_engine_means_unknown(tmp_path):
    engine = FFmpegEngine(binary=str(tmp_path / "nope"), input_format="v4l2")

    assert engine.is_available() is False
    assert engine.list_encoders() is None
    assert engine.probe_encoder(EncoderCandidate.NVENC) is False


# =============================================================================
# ENCODERS
# =============================================================================


@pytest.mark.unit_integration
def test_list_encoders(fake_engine, monkeypatch):
    monkeypatch.setenv("FAKE_ENGINE_ENCODERS", "h264_qsv")
    engine = FFmpegEngine(binary=str(fake_engine), input_format="v4l2")

    listing = engine.list_encoders()

    assert "libx264" in listing
    assert engine.compiled_accelerators(listing) == [EncoderCandidate.QSV]


@pytest.mark.unit_integration
def test_probe_uses_exit_code(fake_engine, monkeypatch):
    monkeypatch.setenv("FAKE_ENGINE_WORKING", "h264_nvenc")
    engine = FFmpegEngine(binary=str(fake_engine), input_format="v4l2")

    assert engine.probe_encoder(EncoderCandidate.NVENC) is True
    assert engine.probe_encoder(EncoderCandidate.AMF) is False


@pytest.mark.unit
def test_compiled_accelerators_keeps_probe_order():
    listing = " V..... h264_amf\n V..... h264_nvenc\n V..... h264_qsv"

    found = FFmpegEngine.compiled_accelerators(listing)

    assert found == [EncoderCandidate.NVENC, EncoderCandidate.QSV, EncoderCandidate.AMF]


@pytest.mark.unit
def test_compiled_accelerators_needs_whole_name():
    assert FFmpegEngine.compiled_accelerators(" V..... h264_nvenc_ext") == []
    assert FFmpegEngine.compiled_accelerators(None) == []


# =============================================================================
# DEVICES AND MODES
# =============================================================================


@pytest.mark.unit_integration
def test_list_devices(fake_engine):
    engine = FFmpegEngine(binary=str(fake_engine), input_format="v4l2")

    assert "Fake Camera" in engine.list_devices()


@pytest.mark.unit_integration
def test_check_mode_supported(fake_engine, session_config):
    engine = FFmpegEngine(binary=str(fake_engine), input_format="v4l2")

    assert engine.check_mode_supported(session_config) is True
    assert engine.check_mode_supported(replace(session_config, frame_rate=60)) is False
    assert engine.check_mode_supported(replace(session_config, width=1920, height=1080)) is False


@pytest.mark.unit
def test_mode_listing_unsupported_backend(fake_engine):
    engine = FFmpegEngine(binary=str(fake_engine), input_format="avfoundation")

    assert engine.list_device_modes("0") is None


@pytest.mark.unit
@pytest.mark.parametrize("listing,width,height,fps,expected", [
    (DSHOW_OPTIONS, 1280, 720, 60, True),
    (DSHOW_OPTIONS, 1280, 720, 30, False),
    (DSHOW_OPTIONS, 1920, 1080, None, True),
    (DSHOW_OPTIONS, 640, 480, 30, False),
    (V4L2_FORMATS, 1280, 720, 30, True),  # no rates listed
    ("no sizes here", 1280, 720, 30, None),
    (None, 1280, 720, 30, None),
])
def test_mode_listed(listing, width, height, fps, expected):
    assert mode_listed(listing, width, height, fps) is expected
