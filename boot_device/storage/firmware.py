from __future__ import annotations

from boot_device.domain.models import FirmwareMode


def detect_firmware_mode(probe) -> FirmwareMode:
    """Detect the firmware of the *currently running* system.

    UEFI when /sys/firmware/efi exists; its absence means a legacy BIOS boot.
    """

    if probe.firmware_marker_present():
        return FirmwareMode.UEFI
    return FirmwareMode.BIOS
