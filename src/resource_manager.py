"""
Resource management for the wildlife motion analyzer.

Memory pressure and CPU temperature monitoring for Raspberry Pi class
hardware. The scheduler consults SystemMonitor to skip analysis cycles while
the device is short on memory.
"""

import gc
import logging
from datetime import datetime
from typing import Optional

import psutil

from config import Config

logger = logging.getLogger(__name__)

CPU_TEMPERATURE_PATH = "/sys/class/thermal/thermal_zone0/temp"


class MemoryManager:
    """Memory management utilities for Raspberry Pi."""

    def __init__(self, config: Config):
        self.config = config
        self.memory_threshold = config.performance.memory_threshold

    def get_memory_usage(self) -> float:
        """Get current memory usage as a ratio (0.0 to 1.0)."""
        try:
            return psutil.virtual_memory().percent / 100.0
        except Exception as e:
            logger.error(f"Error getting memory usage: {e}")
            return 0.5  # Default to 50% if unable to determine

    def is_memory_available(self) -> bool:
        """Check if memory usage is below threshold."""
        return self.get_memory_usage() < self.memory_threshold

    def force_cleanup(self) -> int:
        """Force garbage collection and return the number of collected objects."""
        return gc.collect()

    def get_memory_info(self) -> Optional[dict]:
        """Get detailed memory information."""
        try:
            mem = psutil.virtual_memory()
            return {
                'total_mb': mem.total / (1024 * 1024),
                'available_mb': mem.available / (1024 * 1024),
                'used_mb': mem.used / (1024 * 1024),
                'percent': mem.percent,
            }
        except Exception as e:
            logger.error(f"Error getting memory info: {e}")
            return None


class SystemMonitor:
    """Memory and CPU temperature monitoring behind a single interface."""

    def __init__(self, config: Config):
        self.config = config
        self.memory_manager = MemoryManager(config)

    def get_system_status(self) -> dict:
        """Get comprehensive system status."""
        return {
            'timestamp': datetime.now().isoformat(),
            'memory': self.memory_manager.get_memory_info(),
            'memory_available': self.memory_manager.is_memory_available(),
            'cpu_temp': self.get_cpu_temperature(),
        }

    def should_skip_processing(self) -> bool:
        """Determine if processing should be skipped due to resource constraints."""
        if not self.memory_manager.is_memory_available():
            logger.warning(f"Skipping processing: Memory usage above "
                           f"{self.config.performance.memory_threshold * 100:.0f}%")
            self.memory_manager.force_cleanup()
            return True
        return False

    def log_system_status(self) -> None:
        """Log current system status."""
        status = self.get_system_status()
        if status['memory']:
            logger.info(f"Memory: {status['memory']['percent']:.1f}% used "
                        f"({status['memory']['available_mb']:.0f}MB available)")
        if status['cpu_temp']:
            logger.info(f"CPU Temp: {status['cpu_temp']:.1f}°C")

    def get_cpu_temperature(self) -> Optional[float]:
        """Get Raspberry Pi CPU temperature. Returns None when unavailable."""
        try:
            with open(CPU_TEMPERATURE_PATH, "r") as f:
                temp_str = f.read()
            return float(temp_str) / 1000.0
        except (OSError, ValueError) as e:
            logger.debug(f"CPU temperature unavailable: {e}")
            return None
