"""
Booth Configuration Handler

Reads optional YAML overrides for per-booth settings.
Provides defaults from config/settings.py and validation.

The file is read-only from the application's point of view: operators edit it,
the booth never writes it back.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from config.settings import (
    BOOTH_CONFIG_PATH,
    CAPTURE_INPUT_FORMAT,
    COUNTDOWN_SECONDS,
    DEFAULT_MAX_DURATION,
    ENGINE_BINARY_PATH,
    OUTPUT_BASE_PATH,
    POLITE_STOP_TIMEOUT,
    PREFER_HARDWARE_ENCODER,
    SETTLE_DELAY_SECONDS,
    VIDEO_FPS,
)

VALID_INPUT_FORMATS = ("", "dshow", "v4l2", "avfoundation")


class BoothConfig:
    """
    Booth configuration with YAML file support.

    Reads from config/booth.yaml if it exists,
    otherwise uses defaults from settings.py.

    Usage:
        config = BoothConfig()
        engine = config.engine_binary_path
        limit = config.max_duration
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (None = use default)
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path or BOOTH_CONFIG_PATH)

        # Load configuration (defaults + file overrides)
        self._config = self._load_config()

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration values from settings"""
        return {
            'engine_binary_path': ENGINE_BINARY_PATH,
            'capture_input_format': CAPTURE_INPUT_FORMAT,
            'output_dir': str(OUTPUT_BASE_PATH),
            'prefer_hardware_encoder': PREFER_HARDWARE_ENCODER,
            'validate_mode_before_start': False,
            'use_low_compression_fallback_codec': False,
            'default_frame_rate': VIDEO_FPS,
            'max_duration': DEFAULT_MAX_DURATION,
            'countdown_seconds': COUNTDOWN_SECONDS,
            'settle_delay': SETTLE_DELAY_SECONDS,
            'polite_stop_timeout': POLITE_STOP_TIMEOUT,
            'resolution_preset': 'HD',
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file or use defaults"""
        config = self._get_defaults()

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}

                if not isinstance(file_config, dict):
                    raise ValueError("top level must be a mapping")

                unknown = set(file_config) - set(config)
                if unknown:
                    self.logger.warning(
                        f"Ignoring unknown keys in {self.config_path}: "
                        f"{', '.join(sorted(unknown))}"
                    )
                    for key in unknown:
                        file_config.pop(key)

                # File overrides defaults
                config.update(file_config)
                self.logger.info(f"Loaded booth config from {self.config_path}")

            except (yaml.YAMLError, ValueError, OSError) as e:
                self.logger.warning(
                    f"Failed to load config from {self.config_path}: {e}. "
                    f"Using defaults."
                )
                config = self._get_defaults()
        else:
            self.logger.debug(
                f"No booth config at {self.config_path}, using defaults"
            )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration values"""
        if config['capture_input_format'] not in VALID_INPUT_FORMATS:
            raise ValueError(
                f"capture_input_format must be one of {VALID_INPUT_FORMATS}, "
                f"got {config['capture_input_format']!r}"
            )

        if config['max_duration'] is not None and config['max_duration'] < 0:
            raise ValueError("max_duration cannot be negative")

        if config['countdown_seconds'] < 0:
            raise ValueError("countdown_seconds cannot be negative")

        if config['settle_delay'] < 0 or config['polite_stop_timeout'] <= 0:
            raise ValueError("settle_delay and polite_stop_timeout must be positive")

        if config['default_frame_rate'] is not None and config['default_frame_rate'] <= 0:
            raise ValueError("default_frame_rate must be positive")

    # =========================================================================
    # PROPERTY ACCESSORS
    # =========================================================================

    @property
    def engine_binary_path(self) -> str:
        return str(self._config['engine_binary_path'])

    @property
    def capture_input_format(self) -> str:
        """Engine input backend ('' = by platform)"""
        return self._config['capture_input_format']

    @property
    def output_dir(self) -> Path:
        return Path(self._config['output_dir'])

    @property
    def prefer_hardware_encoder(self) -> bool:
        return bool(self._config['prefer_hardware_encoder'])

    @property
    def validate_mode_before_start(self) -> bool:
        return bool(self._config['validate_mode_before_start'])

    @property
    def use_low_compression_fallback_codec(self) -> bool:
        return bool(self._config['use_low_compression_fallback_codec'])

    @property
    def default_frame_rate(self) -> Optional[int]:
        return self._config['default_frame_rate']

    @property
    def max_duration(self) -> Optional[float]:
        """Auto-stop limit in seconds, None when disabled"""
        value = self._config['max_duration']
        return float(value) if value else None

    @property
    def countdown_seconds(self) -> int:
        return int(self._config['countdown_seconds'])

    @property
    def settle_delay(self) -> float:
        return float(self._config['settle_delay'])

    @property
    def polite_stop_timeout(self) -> float:
        return float(self._config['polite_stop_timeout'])

    @property
    def resolution_preset(self) -> str:
        return str(self._config['resolution_preset'])

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key"""
        return self._config.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary"""
        return self._config.copy()

    def __repr__(self) -> str:
        return f"BoothConfig(path={self.config_path})"
