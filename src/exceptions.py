"""
Consolidated exception hierarchy for the wildlife motion analyzer.

This module provides a unified exception hierarchy that allows for:
- Consistent error handling across all components
- Hierarchical exception catching (e.g., catch all ProcessingError)
- Clear categorization of error types
"""


# =============================================================================
# Base Exception
# =============================================================================

class WildlifeSystemError(Exception):
    """Base exception for all wildlife system errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(WildlifeSystemError, ValueError):
    """Raised when configuration values are missing or invalid."""
    pass


# =============================================================================
# Hardware Errors
# =============================================================================

class HardwareError(WildlifeSystemError):
    """Base exception for hardware-related errors."""
    pass


# Camera Errors
class CameraError(HardwareError):
    """Base exception for camera-related errors."""
    pass


class CameraInitializationError(CameraError):
    """Raised when camera initialization fails."""
    pass


class CameraOperationError(CameraError):
    """Raised when camera operations fail."""
    pass


# =============================================================================
# Processing Errors
# =============================================================================

class ProcessingError(WildlifeSystemError):
    """Base exception for processing-related errors."""
    pass


# Motion Detection Errors
class MotionDetectionError(ProcessingError):
    """Base exception for motion detection errors."""
    pass


# Scheduling Errors
class SchedulerError(ProcessingError):
    """Raised when the analysis scheduler cannot be driven."""
    pass
