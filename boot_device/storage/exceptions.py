"""Custom exceptions for boot device detection and the device file.

Exception Hierarchy:
    BootDeviceError (base)
        ├── DetectionError
        │   ├── EspNotFoundError
        │   └── BiosDiskNotFoundError
        ├── UserDeclinedError
        └── DeviceFileWriteError

Usage:
    from boot_device.storage.exceptions import EspNotFoundError

    if esp is None:
        raise EspNotFoundError(device_file)
"""

from __future__ import annotations


class BootDeviceError(Exception):
    """Base exception for all boot device operations."""


class DetectionError(BootDeviceError):
    """Every heuristic of a locator came back empty."""


class EspNotFoundError(DetectionError):
    """No EFI System Partition could be found on a UEFI system."""

    def __init__(self, device_file: str, fstype: str = "vfat"):
        self.device_file = device_file
        self.fstype = fstype
        super().__init__(
            f"No ESP ({fstype}) partition found automatically. "
            f"Create {device_file} manually with: "
            f"UEFI:/dev/disk/by-uuid/<UUID> or UEFI:/dev/nvme0n1p1"
        )


class BiosDiskNotFoundError(DetectionError):
    """The whole disk backing / could not be determined."""

    def __init__(self, root_source: str | None = None):
        self.root_source = root_source
        msg = "Could not reliably determine BIOS disk"
        if root_source:
            msg += f" (root is mounted from {root_source})"
        super().__init__(msg)


class UserDeclinedError(BootDeviceError):
    """The operator answered no at the confirmation prompt."""

    def __init__(self, target: str, device_file: str):
        self.target = target
        self.device_file = device_file
        super().__init__(f"Aborted: {target!r} was not written to {device_file}")


class DeviceFileWriteError(BootDeviceError):
    """Writing the device file failed."""

    def __init__(self, device_file: str, reason: str):
        self.device_file = device_file
        self.reason = reason
        super().__init__(f"Failed to write {device_file}: {reason}")
