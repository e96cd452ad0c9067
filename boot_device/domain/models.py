"""Domain model for boot device detection.

Everything here is derived per run; only ``BootTarget.to_line()`` ever reaches
the disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


BY_UUID_PREFIX = "/dev/disk/by-uuid/"
BY_ID_DIR = "/dev/disk/by-id"
UEFI_PREFIX = "UEFI"
BIOS_PREFIX = "BIOS"


# ==============================================================================
# Firmware
# ==============================================================================


class FirmwareMode(Enum):
    """Firmware interface the running system was booted with."""

    UEFI = "UEFI"
    BIOS = "BIOS"

    @property
    def label(self) -> str:
        return "UEFI" if self is FirmwareMode.UEFI else "BIOS (legacy)"


# ==============================================================================
# Block devices
# ==============================================================================


@dataclass(frozen=True)
class BlockDevice:
    """A device node and the metadata the heuristics looked at.

    None of the optional attributes are guaranteed to be present.
    """

    path: str  # e.g., "/dev/nvme0n1p1"
    fstype: Optional[str] = None  # e.g., "vfat"
    uuid: Optional[str] = None  # filesystem UUID, e.g., "ABCD-1234"
    mountpoint: Optional[str] = None
    partflags: Optional[str] = None
    parent: Optional[str] = None  # whole disk, e.g., "/dev/nvme0n1"
    by_id: tuple[str, ...] = field(default_factory=tuple)

    def summary(self) -> str:
        parts = [self.path]
        if self.fstype:
            parts.append(f"fstype={self.fstype}")
        if self.uuid:
            parts.append(f"uuid={self.uuid}")
        if self.mountpoint:
            parts.append(f"mounted={self.mountpoint}")
        if self.parent:
            parts.append(f"parent={self.parent}")
        if self.by_id:
            parts.append(f"by-id={','.join(self.by_id)}")
        return " ".join(parts)


# ==============================================================================
# Decision
# ==============================================================================


@dataclass(frozen=True)
class BootTarget:
    """Where the bootloader goes: the ESP (UEFI) or a whole disk (BIOS)."""

    mode: FirmwareMode
    path: str

    def to_line(self) -> str:
        """Format the single line of the device file.

        BIOS targets are written bare, without a ``BIOS:`` prefix.
        """
        if self.mode is FirmwareMode.UEFI:
            return f"{UEFI_PREFIX}:{self.path}"
        return self.path

    def __str__(self) -> str:
        return self.to_line()


@dataclass(frozen=True)
class DetectionResult:
    firmware: FirmwareMode
    device: str  # raw device node before stable-path resolution
    target: BootTarget
    fallback_used: bool = False
