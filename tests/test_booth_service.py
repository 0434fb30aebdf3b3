"""
Booth Service Tests

Command-line parsing, diagnostic commands and one mock record session.

To run:
    pytest tests/test_booth_service.py -v
"""

import signal

import pytest

import booth_service
from booth_service import BoothService, build_parser, cmd_encoders, cmd_modes
from config.booth_config import BoothConfig
from core.state_machine import SessionState


@pytest.fixture
def booth(tmp_path):
    path = tmp_path / "booth.yaml"
    path.write_text(
        "countdown_seconds: 0\n"
        "settle_delay: 0\n"
        "prefer_hardware_encoder: false\n"
        f"output_dir: {tmp_path / 'recordings'}\n"
    )
    return BoothConfig(path)


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    """Keep the test runner's own SIGINT handling"""
    monkeypatch.setattr(signal, "signal", lambda signum, handler: None)


class StubEngine:
    def __init__(self, listing=None):
        self.listing = listing

    def list_device_modes(self, camera_id, binary=None):
        return self.listing

    def list_encoders(self, binary=None):
        return ""

    def compiled_accelerators(self, listing):
        return []


# =============================================================================
# PARSER
# =============================================================================


@pytest.mark.unit
def test_record_arguments():
    args = build_parser().parse_args([
        "--config", "booth.yaml", "record",
        "--camera", "USB Camera", "--mic", "USB Mic",
        "--fps", "30", "--max-duration", "45", "--preview", "--mock",
    ])

    assert args.command == "record"
    assert args.camera == "USB Camera"
    assert args.mic == "USB Mic"
    assert args.fps == 30
    assert args.max_duration == 45.0
    assert args.preview and args.mock
    assert not args.review
    assert args.func is booth_service.cmd_record


@pytest.mark.unit
def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.unit
def test_record_requires_camera():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["record"])


# =============================================================================
# DIAGNOSTIC COMMANDS
# =============================================================================


@pytest.mark.unit
def test_cmd_modes_reports_verdict(booth, monkeypatch, capsys):
    engine = StubEngine("  min s=1280x720 fps=30 max s=1280x720 fps=30")
    monkeypatch.setattr(booth_service, "_engine", lambda config: engine)
    args = build_parser().parse_args(
        ["modes", "--camera", "cam", "--width", "1280", "--height", "720", "--fps", "60"]
    )

    assert cmd_modes(args, booth) == 0
    assert "1280x720@60: not listed" in capsys.readouterr().out


@pytest.mark.unit
def test_cmd_modes_without_listing(booth, monkeypatch):
    monkeypatch.setattr(booth_service, "_engine", lambda config: StubEngine(None))
    args = build_parser().parse_args(["modes", "--camera", "cam"])

    assert cmd_modes(args, booth) == 1


@pytest.mark.unit
def test_cmd_encoders_low_compression(booth, monkeypatch, capsys):
    monkeypatch.setattr(booth_service, "_engine", lambda config: StubEngine())
    args = build_parser().parse_args(["encoders", "--low-compression"])

    assert cmd_encoders(args, booth) == 0
    assert capsys.readouterr().out.strip() == "mjpeg"


# =============================================================================
# RECORD SESSION (MOCK)
# =============================================================================


@pytest.mark.unit_integration
def test_mock_record_session(booth, tmp_path):
    output = tmp_path / "out" / "take.mkv"
    args = build_parser().parse_args([
        "record", "--camera", "mock-camera-0", "--mic", "mock-mic-0",
        "--output", str(output), "--preview", "--mock", "--max-duration", "0",
    ])
    service = BoothService(args, booth)
    # Stop as soon as recording is up
    service.stop_requested = True

    assert service.run() == 0

    assert service.orchestrator.state == SessionState.IDLE
    assert service.orchestrator.last_output == output.with_suffix(".mp4")
    assert output.with_suffix(".mp4").exists()
    assert service.orchestrator.timer.max_duration is None


@pytest.mark.unit_integration
def test_mock_record_unknown_camera_fails(booth):
    args = build_parser().parse_args(["record", "--camera", "", "--mock"])

    assert BoothService(args, booth).run() == 1


@pytest.mark.unit
def test_signal_handler_requests_stop(booth):
    args = build_parser().parse_args(["record", "--camera", "mock-camera-0", "--mock"])
    service = BoothService(args, booth)
    try:
        service._signal_handler(signal.SIGTERM, None)

        assert service.stop_requested
    finally:
        service.orchestrator.cleanup()
