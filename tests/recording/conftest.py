"""
Recording Test Configuration and Fixtures

Shared fixtures for recording module tests.
"""

import shutil
import stat
import sys
import tempfile
from pathlib import Path

import pytest

from core.event_bus import EventBus
from recording.controllers.encoder_selector import EncoderSelector
from recording.controllers.session_orchestrator import SessionOrchestrator
from recording.controllers.session_timer import SessionTimer
from recording.implementations.ffmpeg_engine import FFmpegEngine
from recording.implementations.mock_device import MockCaptureDevice
from recording.implementations.mock_supervisor import MockSupervisor
from recording.interfaces.review_gate_interface import AutoReviewGate
from recording.models.capture import SessionConfig

# Stand-in engine executable. Behaviour is picked from environment
# variables so tests can steer a process the supervisor launches itself.
FAKE_ENGINE_SOURCE = '''#!{python}
import os
import sys
import time

args = sys.argv[1:]
err = sys.stderr

if "-encoders" in args:
    print("Encoders:")
    print(" V..... libx264              libx264 H.264 / AVC")
    print(" V..... mjpeg                MJPEG (Motion JPEG)")
    for name in filter(None, os.environ.get("FAKE_ENGINE_ENCODERS", "").split(",")):
        print(" V..... %s             hardware encoder" % name)
    sys.exit(0)

if "lavfi" in args:
    codec = args[args.index("-c:v") + 1]
    working = os.environ.get("FAKE_ENGINE_WORKING", "").split(",")
    if codec in working or codec in ("libx264", "mjpeg"):
        sys.exit(0)
    err.write("Cannot load encoder %s\\n" % codec)
    sys.exit(1)

if "-list_options" in args or "-list_formats" in args:
    err.write("  vcodec=mjpeg  min s=1280x720 fps=30 max s=1280x720 fps=30\\n")
    err.write("  vcodec=mjpeg  min s=640x480 fps=30 max s=640x480 fps=30\\n")
    sys.exit(1)

if "-list_devices" in args or "-sources" in args:
    err.write("\\"Fake Camera\\" (video)\\n")
    err.write("\\"Fake Microphone\\" (audio)\\n")
    sys.exit(1)

mode = os.environ.get("FAKE_ENGINE_MODE", "record")

if mode == "busy":
    err.write("[dshow] Could not run graph (sometimes caused by a device already in use)\\n")
    err.write("Error opening input: I/O error\\n")
    sys.exit(1)

if mode == "crash":
    err.write("Unexpected failure\\n")
    sys.exit(1)

with open(args[-1], "wb") as f:
    f.write(b"\\x00\\x00\\x00\\x20ftypisom")

err.write("Press [q] to stop\\n")
err.flush()

if mode == "crash_later":
    time.sleep(float(os.environ.get("FAKE_ENGINE_CRASH_AFTER", "0.5")))
    err.write("Error while decoding stream\\n")
    sys.exit(1)

if mode == "ignore_quit":
    while True:
        time.sleep(0.1)

for line in sys.stdin:
    if line.strip() == "q":
        err.write("Exiting normally, received signal\\n")
        sys.exit(0)
sys.exit(0)
'''


# =============================================================================
# ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def fake_engine(tmp_path):
    """
    Provide path to an executable fake engine.

    Usage:
        def test_start(fake_engine, monkeypatch):
            monkeypatch.setenv("FAKE_ENGINE_MODE", "busy")
            config = SessionConfig(..., engine_binary_path=str(fake_engine))
    """
    script = tmp_path / "fake-ffmpeg"
    script.write_text(FAKE_ENGINE_SOURCE.replace("{python}", sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def session_config(temp_recording_dir, fake_engine):
    """Provide a video+audio SessionConfig writing into a temp directory"""
    return SessionConfig(
        camera_id="mock-camera-0",
        microphone_id="mock-mic-0",
        output_path=temp_recording_dir / "take.mp4",
        width=1280,
        height=720,
        frame_rate=30,
        engine_binary_path=str(fake_engine),
        prefer_hardware_encoder=False,
        input_format="v4l2",
    )


class StubEngine:
    """Introspection double: fixed encoder listing and probe verdicts"""

    def __init__(self, listing="", working=(), mode_answer=None):
        self.listing = listing
        self.working = set(working)
        self.mode_answer = mode_answer
        self.probed = []
        self.mode_checks = 0

    def list_encoders(self, binary=None):
        return self.listing

    def compiled_accelerators(self, listing):
        return FFmpegEngine.compiled_accelerators(listing)

    def probe_encoder(self, encoder, binary=None):
        self.probed.append(encoder)
        return encoder in self.working

    def check_mode_supported(self, config):
        self.mode_checks += 1
        return self.mode_answer


@pytest.fixture
def stub_engine():
    """Provide StubEngine with no accelerators"""
    return StubEngine()


@pytest.fixture
def make_engine():
    """
    Provide the StubEngine class for custom listings.

    Usage:
        def test_probe(make_engine):
            engine = make_engine(listing="h264_qsv", working=[EncoderCandidate.QSV])
    """
    return StubEngine


# =============================================================================
# MOCK COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def mock_supervisor():
    supervisor = MockSupervisor()
    yield supervisor
    supervisor.cleanup()


@pytest.fixture
def mock_device():
    return MockCaptureDevice()


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def session_timer(fake_clock):
    """SessionTimer on the fake clock, no ticker thread"""
    timer = SessionTimer(clock=fake_clock, tick_interval=0)
    yield timer
    timer.reset()


@pytest.fixture
def review_gate():
    return AutoReviewGate(keep=True)


@pytest.fixture
def orchestrator(mock_device, mock_supervisor, stub_engine, session_timer, review_gate):
    """
    Provide SessionOrchestrator on mock collaborators.

    No settling delay, no countdown, no real sleeping.
    """
    orchestrator = SessionOrchestrator(
        device_adapter=mock_device,
        supervisor=mock_supervisor,
        encoder_selector=EncoderSelector(stub_engine, platform="linux"),
        engine=stub_engine,
        timer=session_timer,
        review_gate=review_gate,
        events=EventBus(),
        settle_delay=0,
        blocking_timeout=0.5,
        sleep=lambda seconds: None,
    )
    yield orchestrator
    orchestrator.cleanup()


@pytest.fixture
def mock_config(temp_recording_dir):
    """SessionConfig for the mock camera (engine never launched)"""
    return SessionConfig(
        camera_id="mock-camera-0",
        microphone_id="mock-mic-0",
        output_path=temp_recording_dir / "booth.mp4",
        width=1280,
        height=720,
        frame_rate=30,
        prefer_hardware_encoder=False,
    )


# =============================================================================
# TEMPORARY FILE/DIRECTORY FIXTURES
# =============================================================================


@pytest.fixture
def temp_video_file():
    """
    Provide temporary file path for video output.

    File is automatically cleaned up after test.
    """
    temp_dir = Path(tempfile.mkdtemp())
    video_file = temp_dir / "test_recording.mp4"

    yield video_file

    # Cleanup
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


@pytest.fixture
def temp_recording_dir():
    """
    Provide temporary directory for multiple recordings.

    Directory is automatically cleaned up after test.
    """
    temp_dir = Path(tempfile.mkdtemp())

    yield temp_dir

    # Cleanup
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


# =============================================================================
# CALLBACK TRACKING FIXTURES
# =============================================================================


@pytest.fixture
def callback_tracker():
    """
    Provide helper for tracking callback calls.

    Usage:
        def test_callback(orchestrator, callback_tracker):
            orchestrator.on_status = callback_tracker.track
            # ... trigger status ...
            assert callback_tracker.was_called()
    """

    class CallbackTracker:
        def __init__(self):
            self.calls = []

        def track(self, *args, **kwargs):
            """Record a callback invocation"""
            self.calls.append({"args": args, "kwargs": kwargs})

        def was_called(self) -> bool:
            """Check if callback was called"""
            return len(self.calls) > 0

        def get_call_count(self) -> int:
            """Get number of times callback was called"""
            return len(self.calls)

        def get_last_call(self):
            """Get arguments from last call"""
            return self.calls[-1] if self.calls else None

        def get_all_calls(self):
            """Get all calls"""
            return self.calls.copy()

        def reset(self):
            """Clear call history"""
            self.calls.clear()

    return CallbackTracker()


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """
    Configure pytest with custom markers for recording tests.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "requires_ffmpeg: Tests requiring FFmpeg")
