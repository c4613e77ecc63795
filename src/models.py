"""
Consolidated data models for the wildlife motion analyzer.

This module contains all dataclasses and enums used across the system for:
- Raw motion signals produced by frame differencing
- Classified detections
- Aggregated analytics
- Per-cycle pipeline results
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Optional, Mapping, Tuple, Dict, Any


HOURS_PER_DAY = 24


# =============================================================================
# Motion Detection Models
# =============================================================================

class MotionCategory(str, Enum):
    """Coarse motion-magnitude buckets (not species)."""
    AMBIENT_MOTION = "AMBIENT_MOTION"
    SMALL_ANIMAL = "SMALL_ANIMAL"
    MEDIUM_ANIMAL = "MEDIUM_ANIMAL"
    LARGE_ANIMAL = "LARGE_ANIMAL"


@dataclass(frozen=True)
class MotionSignal:
    """Raw result of differencing two frames over the sampled grid."""
    total_magnitude: int = 0
    sample_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0


@dataclass(frozen=True)
class Detection:
    """A classified motion event."""
    timestamp: datetime
    intensity: float
    confidence: float
    category: MotionCategory

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation for presentation layers."""
        return {
            'timestamp': self.timestamp.isoformat(),
            'intensity': self.intensity,
            'confidence': self.confidence,
            'category': self.category.value,
        }


# =============================================================================
# Analytics Models
# =============================================================================

@dataclass(frozen=True)
class AnalyticsSnapshot:
    """
    Read-only copy of the running detection statistics.

    Snapshots compare by value but are not hashable, since ``by_category``
    is a mapping view.
    """
    total_detections: int = 0
    by_category: Mapping[MotionCategory, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    hourly: Tuple[int, ...] = (0,) * HOURS_PER_DAY

    __hash__ = None

    @property
    def peak_hour(self) -> Optional[int]:
        """Hour of day with the most detections, or None if nothing recorded."""
        if self.total_detections == 0:
            return None
        return max(range(HOURS_PER_DAY), key=lambda hour: self.hourly[hour])


# =============================================================================
# Pipeline Models
# =============================================================================

class CycleOutcome(Enum):
    """What a single analysis cycle ended up doing."""
    NO_FRAME = "no_frame"
    WARMUP = "warmup"
    NO_MOTION = "no_motion"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    SKIPPED_INACTIVE = "skipped_inactive"
    SKIPPED_BUSY = "skipped_busy"
    SKIPPED_RESOURCES = "skipped_resources"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleResult:
    """Result of one scheduler tick / pipeline cycle."""
    outcome: CycleOutcome
    signal: MotionSignal = field(default_factory=MotionSignal)
    detection: Optional[Detection] = None
    duration_ms: float = 0.0

    @property
    def accepted(self) -> bool:
        return self.outcome is CycleOutcome.ACCEPTED
