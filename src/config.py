"""
Configuration for the wildlife motion analyzer.

Settings are grouped into validated dataclass sections. Defaults can be
overridden from the environment (or a .env file loaded with python-dotenv).
"""

import logging
import os
from dataclasses import dataclass, asdict
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MotionConfig:
    """Frame differencing settings."""
    sampling_stride: int = 8
    min_pixel_difference: int = 10

    def __post_init__(self):
        if self.sampling_stride <= 0:
            raise ConfigurationError("Sampling stride must be positive")
        if self.min_pixel_difference < 0:
            raise ConfigurationError("Minimum pixel difference cannot be negative")


@dataclass
class ClassificationConfig:
    """Confidence thresholds applied to classified detections."""
    acceptance_threshold: float = 0.4
    alert_threshold: float = 0.6  # Presentation only, not stored by the core

    def __post_init__(self):
        if not 0.0 <= self.acceptance_threshold <= 1.0:
            raise ConfigurationError("Acceptance threshold must be between 0 and 1")
        if not 0.0 <= self.alert_threshold <= 1.0:
            raise ConfigurationError("Alert threshold must be between 0 and 1")


@dataclass
class HistoryConfig:
    """In-memory detection history settings."""
    capacity: int = 50
    alert_limit: int = 5

    def __post_init__(self):
        if self.capacity < 1:
            raise ConfigurationError("History capacity must be at least 1")
        if self.alert_limit < 1:
            raise ConfigurationError("Alert limit must be at least 1")


@dataclass
class SchedulerConfig:
    """Analysis tick settings."""
    tick_period: float = 0.1  # seconds
    daylight_only: bool = False

    def __post_init__(self):
        if self.tick_period <= 0:
            raise ConfigurationError("Tick period must be positive")


@dataclass
class CameraConfig:
    """Frame source settings."""
    device_index: int = 0
    resolution: Tuple[int, int] = (640, 480)
    frame_interval: float = 0.05  # seconds between frame reads

    def __post_init__(self):
        if self.device_index < 0:
            raise ConfigurationError("Camera device index cannot be negative")
        if len(self.resolution) != 2 or any(v <= 0 for v in self.resolution):
            raise ConfigurationError(f"Invalid camera resolution: {self.resolution}")
        if self.frame_interval <= 0:
            raise ConfigurationError("Frame interval must be positive")


@dataclass
class PerformanceConfig:
    """Resource limits and loop timing."""
    memory_threshold: float = 0.9
    status_log_interval: float = 30.0  # seconds
    error_sleep: float = 5.0  # seconds

    def __post_init__(self):
        if not 0.0 < self.memory_threshold < 1.0:
            raise ConfigurationError("Memory threshold must be between 0 and 1")
        if self.status_log_interval <= 0:
            raise ConfigurationError("Status log interval must be positive")
        if self.error_sleep < 0:
            raise ConfigurationError("Error sleep cannot be negative")


@dataclass
class LocationConfig:
    """Camera location, used for the daylight activity window."""
    latitude: float = 52.52
    longitude: float = 13.405
    timezone: str = "Europe/Berlin"

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ConfigurationError(f"Invalid latitude: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ConfigurationError(f"Invalid longitude: {self.longitude}")


def _parse_resolution(value: str, default: Tuple[int, int]) -> Tuple[int, int]:
    """Parse 'WIDTHxHEIGHT', falling back to default on malformed input."""
    try:
        width, height = value.lower().split('x')
        return int(width), int(height)
    except ValueError:
        logger.warning(f"Invalid resolution format '{value}', using default {default}")
        return default


class Config:
    """Top-level configuration composed of validated sections."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        if env is None:
            # Load environment variables
            load_dotenv()
            env = os.environ
        self._env = env

        self.motion = MotionConfig(
            sampling_stride=self._get_int('MOTION_SAMPLING_STRIDE', 8),
            min_pixel_difference=self._get_int('MOTION_MIN_PIXEL_DIFFERENCE', 10),
        )
        self.classification = ClassificationConfig(
            acceptance_threshold=self._get_float('ACCEPTANCE_CONFIDENCE_THRESHOLD', 0.4),
            alert_threshold=self._get_float('ALERT_CONFIDENCE_THRESHOLD', 0.6),
        )
        self.history = HistoryConfig(
            capacity=self._get_int('HISTORY_CAPACITY', 50),
            alert_limit=self._get_int('HISTORY_ALERT_LIMIT', 5),
        )
        self.scheduler = SchedulerConfig(
            tick_period=self._get_float('ANALYSIS_TICK_PERIOD_MS', 100.0) / 1000.0,
            daylight_only=self._get_bool('DAYLIGHT_ONLY', False),
        )
        self.camera = CameraConfig(
            device_index=self._get_int('CAMERA_DEVICE_INDEX', 0),
            resolution=_parse_resolution(env.get('CAMERA_RESOLUTION', '640x480'), (640, 480)),
            frame_interval=self._get_float('CAMERA_FRAME_INTERVAL', 0.05),
        )
        self.performance = PerformanceConfig(
            memory_threshold=self._get_float('MEMORY_THRESHOLD', 0.9),
            status_log_interval=self._get_float('STATUS_LOG_INTERVAL', 30.0),
            error_sleep=self._get_float('ERROR_SLEEP', 5.0),
        )
        self.location = LocationConfig(
            latitude=self._get_float('LOCATION_LATITUDE', 52.52),
            longitude=self._get_float('LOCATION_LONGITUDE', 13.405),
            timezone=env.get('LOCATION_TIMEZONE', 'Europe/Berlin'),
        )

    def _get_int(self, key: str, default: int) -> int:
        value = self._env.get(key)
        if value is None or value == '':
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got '{value}'") from None

    def _get_float(self, key: str, default: float) -> float:
        value = self._env.get(key)
        if value is None or value == '':
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got '{value}'") from None

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self._env.get(key)
        if value is None or value == '':
            return default
        return value.strip().lower() in ('1', 'true', 'yes', 'on')

    @classmethod
    def create_test_config(cls, **overrides) -> 'Config':
        """Create a config from defaults plus the given overrides, ignoring the environment."""
        return cls(env={key: str(value) for key, value in overrides.items()})

    def get_summary(self) -> dict:
        """Get a per-section summary of the active configuration."""
        return {
            'motion': asdict(self.motion),
            'classification': asdict(self.classification),
            'history': asdict(self.history),
            'scheduler': asdict(self.scheduler),
            'camera': asdict(self.camera),
            'performance': asdict(self.performance),
            'location': asdict(self.location),
        }
