"""
Booth Service

Command-line entry point for the video booth.

Commands:
    devices                 List capture devices the engine can see
    modes --camera NAME     List the modes one camera reports
    encoders                Run encoder selection and print the choice
    record --camera NAME    Run one recording session

A record session ends on max duration, Ctrl+C (SIGINT/SIGTERM) or engine
exit. The control loop runs on the main thread; engine exits and timer ticks
arrive through the orchestrator's inbox.
"""

import argparse
import logging
import logging.handlers
import signal
import sys
from pathlib import Path
from typing import List, Optional

from config.booth_config import BoothConfig
from config.settings import LOG_BACKUP_DAYS, LOG_DIR, LOG_SERVICE_FILE
from recording.controllers.encoder_selector import EncoderSelector
from recording.factory import RecordingFactory
from recording.implementations.ffmpeg_engine import FFmpegEngine, mode_listed
from recording.interfaces.review_gate_interface import (
    AutoReviewGate,
    ConsoleReviewGate,
)
from recording.utils.recording_utils import describe_output, generate_filename


class BoothService:
    """
    One recording session driven from the command line.

    Usage:
        service = BoothService(args, BoothConfig())
        exit_code = service.run()
    """

    def __init__(self, args: argparse.Namespace, booth: BoothConfig):
        self.logger = logging.getLogger(__name__)
        self.args = args
        self.booth = booth
        self.stop_requested = False

        review_gate = ConsoleReviewGate() if args.review else AutoReviewGate()
        self.orchestrator = RecordingFactory.create_orchestrator(
            mode="mock" if args.mock else "auto",
            config=booth,
            review_gate=review_gate,
        )
        if args.max_duration is not None:
            self.orchestrator.set_max_duration(args.max_duration or None)

        self.orchestrator.on_status = lambda message: self.logger.info(f"Status: {message}")
        self.orchestrator.on_countdown = lambda remaining: print(f"{remaining}...", flush=True)
        self.orchestrator.on_timer = self._show_timer

        # Register signal handlers for graceful shutdown
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def run(self) -> int:
        """
        Run the session until it ends.

        Returns:
            Process exit code (0 = recording kept)
        """
        args = self.args
        if args.preview:
            self.orchestrator.start_preview(args.camera, self.booth.resolution_preset)

        output = Path(args.output) if args.output else generate_filename(self.booth.output_dir)
        overrides = {
            "prefer_hardware_encoder": self.booth.prefer_hardware_encoder and not args.no_hardware,
            "validate_mode_before_start": self.booth.validate_mode_before_start,
            "use_low_compression_fallback_codec": self.booth.use_low_compression_fallback_codec,
            "engine_binary_path": self.booth.engine_binary_path,
            "input_format": self.booth.capture_input_format,
        }
        if args.width and args.height:
            overrides["width"] = args.width
            overrides["height"] = args.height
        if args.fps:
            overrides["frame_rate"] = args.fps
        elif not self.orchestrator.is_previewing:
            overrides["frame_rate"] = self.booth.default_frame_rate

        config = self.orchestrator.make_config(args.camera, output, args.mic, **overrides)

        try:
            if not self.orchestrator.start_recording(config):
                self.logger.error(f"Recording did not start: {self.orchestrator.status_message}")
                return 1

            self.logger.info("Recording... press Ctrl+C to stop")
            self.orchestrator.run_until(
                lambda: self.stop_requested or not self.orchestrator.is_recording
            )
            if self.orchestrator.is_recording:
                self.orchestrator.stop_recording()
        finally:
            self._shutdown()

        if self.orchestrator.last_output and self.orchestrator.last_output_kept:
            self.logger.info(f"Saved: {describe_output(self.orchestrator.last_output)}")
            return 0
        return 1

    def _show_timer(self, display: str) -> None:
        print(f"\r{display}", end="", flush=True)

    def _signal_handler(self, signum, _frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            _frame: Current stack frame (unused, required by signal API)
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received signal {signal_name}, stopping...")
        self.stop_requested = True

    def _shutdown(self):
        self.logger.info("Shutting down Booth Service...")
        self.orchestrator.cleanup()
        self.logger.info("Booth Service shutdown complete")


# =============================================================================
# DIAGNOSTIC COMMANDS
# =============================================================================


def _engine(booth: BoothConfig) -> FFmpegEngine:
    return FFmpegEngine(
        binary=booth.engine_binary_path,
        input_format=booth.capture_input_format or None,
    )


def cmd_devices(args: argparse.Namespace, booth: BoothConfig) -> int:
    listing = _engine(booth).list_devices()
    return 0 if listing is not None else 1


def cmd_modes(args: argparse.Namespace, booth: BoothConfig) -> int:
    listing = _engine(booth).list_device_modes(args.camera)
    if listing is None:
        return 1

    if args.width and args.height:
        supported = mode_listed(listing, args.width, args.height, args.fps)
        verdict = {True: "listed", False: "not listed", None: "unknown"}[supported]
        print(f"{args.width}x{args.height}@{args.fps or 'default'}: {verdict}")
    return 0


def cmd_encoders(args: argparse.Namespace, booth: BoothConfig) -> int:
    selector = EncoderSelector(_engine(booth))
    encoder = selector.select(
        booth.engine_binary_path,
        prefer_hardware=booth.prefer_hardware_encoder and not args.no_hardware,
        use_low_compression=args.low_compression,
    )
    print(encoder.codec_name)
    return 0


def cmd_record(args: argparse.Namespace, booth: BoothConfig) -> int:
    return BoothService(args, booth).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booth",
        description="Video booth session orchestrator",
    )
    parser.add_argument("--config", type=Path, help="Booth YAML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    devices = subparsers.add_parser("devices", help="List capture devices")
    devices.set_defaults(func=cmd_devices)

    modes = subparsers.add_parser("modes", help="List a camera's modes")
    modes.add_argument("--camera", required=True)
    modes.add_argument("--width", type=int)
    modes.add_argument("--height", type=int)
    modes.add_argument("--fps", type=int)
    modes.set_defaults(func=cmd_modes)

    encoders = subparsers.add_parser("encoders", help="Select an encoder")
    encoders.add_argument("--no-hardware", action="store_true")
    encoders.add_argument("--low-compression", action="store_true")
    encoders.set_defaults(func=cmd_encoders)

    record = subparsers.add_parser("record", help="Record one session")
    record.add_argument("--camera", required=True)
    record.add_argument("--mic", help="Microphone (omit or '(No audio)' for video only)")
    record.add_argument("--output", help="Output file (default: timestamped in output_dir)")
    record.add_argument("--width", type=int)
    record.add_argument("--height", type=int)
    record.add_argument("--fps", type=int)
    record.add_argument("--max-duration", type=float, help="Auto-stop after S seconds (0 = unlimited)")
    record.add_argument("--no-hardware", action="store_true")
    record.add_argument("--preview", action="store_true", help="Run the live preview during recording")
    record.add_argument("--review", action="store_true", help="Ask keep/retake after recording")
    record.add_argument("--mock", action="store_true", help="Use mock device and engine")
    record.set_defaults(func=cmd_record)

    return parser


def setup_logging(verbose: bool = False):
    """
    Setup logging with rotation.

    Logs to both console and file with rotation:
    - Daily rotation
    - Keep 7 days of logs
    """
    level = logging.DEBUG if verbose else logging.INFO

    # Create logger
    logger = logging.getLogger()
    logger.setLevel(level)

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    log_format = logging.Formatter("%(message)s | %(name)s")
    console_handler.setFormatter(log_format)
    logger.addHandler(console_handler)

    log_file = Path(LOG_DIR) / LOG_SERVICE_FILE
    try:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_DAYS,
            encoding="utf-8",
        )
    except (PermissionError, FileNotFoundError):
        # Fallback to local logs directory if LOG_DIR not writable
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        fallback_log = logs_dir / LOG_SERVICE_FILE
        logger.warning(f"Cannot write to {log_file}, using fallback: {fallback_log}")
        logger.info(
            f"To fix: sudo mkdir -p {LOG_DIR} && sudo chown $(whoami) {LOG_DIR}"
        )
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(fallback_log),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_DAYS,
            encoding="utf-8",
        )

    file_handler.setLevel(level)
    file_handler.setFormatter(log_format)
    logger.addHandler(file_handler)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Sets up logging and dispatches the subcommand.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info(f"Video Booth: {args.command}")
    logger.info("=" * 60)

    try:
        booth = BoothConfig(args.config)
        return args.func(args, booth)
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
