"""Domain models for boot device detection."""

from __future__ import annotations

from .models import (
    BY_ID_DIR,
    BY_UUID_PREFIX,
    BlockDevice,
    BootTarget,
    DetectionResult,
    FirmwareMode,
)


__all__ = [
    "BY_ID_DIR",
    "BY_UUID_PREFIX",
    "BlockDevice",
    "BootTarget",
    "DetectionResult",
    "FirmwareMode",
]
