"""Read a boot device file the way the NixOS configuration does.

The configuration takes the first line, drops all whitespace and splits it on
the first colon:

    UEFI:/dev/disk/by-uuid/ABCD-1234   -> systemd-boot, ESP given
    BIOS:/dev/disk/by-id/ata-...       -> GRUB on that disk
    /dev/disk/by-id/ata-...            -> firmware decides, target given
    (empty, AUTO or missing file)      -> firmware decides, no target
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from boot_device.domain.models import BIOS_PREFIX, UEFI_PREFIX, FirmwareMode

AUTO = "AUTO"
GRUB_NODEV = "nodev"
DEFAULT_GRUB_DEVICE = "/dev/sda"


@dataclass(frozen=True)
class BootDeviceEntry:
    mode: str  # "UEFI", "BIOS" or "AUTO"
    target: str = ""


@dataclass(frozen=True)
class LoaderPlan:
    use_systemd_boot: bool
    grub_device: str
    esp_device: Optional[str]

    @property
    def loader(self) -> str:
        return "systemd-boot" if self.use_systemd_boot else "grub"


def parse_boot_device_line(text: str) -> BootDeviceEntry:
    lines = text.split("\n")
    trimmed = "".join(lines[0].split()) if lines else ""
    if not trimmed:
        return BootDeviceEntry(AUTO)
    mode, sep, target = trimmed.partition(":")
    if sep and mode in (UEFI_PREFIX, BIOS_PREFIX):
        return BootDeviceEntry(mode, target)
    if trimmed == AUTO:
        return BootDeviceEntry(AUTO)
    return BootDeviceEntry(AUTO, trimmed)


def read_boot_device_file(device_file: str) -> BootDeviceEntry:
    path = Path(device_file)
    if not path.exists():
        return BootDeviceEntry(AUTO)
    return parse_boot_device_line(path.read_text(encoding="utf-8"))


def plan_loader(entry: BootDeviceEntry, firmware: FirmwareMode) -> LoaderPlan:
    if entry.mode == UEFI_PREFIX:
        use_systemd_boot = True
    elif entry.mode == BIOS_PREFIX:
        use_systemd_boot = False
    else:
        use_systemd_boot = firmware is FirmwareMode.UEFI

    if use_systemd_boot:
        return LoaderPlan(True, GRUB_NODEV, entry.target or None)
    return LoaderPlan(False, entry.target or DEFAULT_GRUB_DEVICE, None)
