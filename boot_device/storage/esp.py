"""Locate the EFI System Partition.

Search order, first hit wins:

    1. A vfat filesystem mounted at (or containing) one of the ESP mount
       points, /boot and /boot/efi by default.
    2. A vfat partition marked as ESP, either through its partition flags or
       its partition type (GPT GUID or MBR type 0xef).
    3. The first vfat partition at all.
"""

from __future__ import annotations

from typing import Optional, Sequence

from boot_device.config import settings
from boot_device.logging import LoggerFactory
from boot_device.storage.exceptions import EspNotFoundError
from boot_device.storage.search import first_success, requires

ESP_GPT_GUID = "c12a7328-f81f-11d2-ba4b-00a0c93ec93b"
ESP_MBR_TYPE = "0xef"

log = LoggerFactory.for_detection("esp")


def is_esp_partition(partflags: Optional[str], parttype: Optional[str]) -> bool:
    if partflags and "esp" in partflags.lower():
        return True
    if parttype and parttype.strip().lower() in (ESP_GPT_GUID, ESP_MBR_TYPE):
        return True
    return False


def mounted_esp(
    probe,
    mountpoints: Sequence[str] = settings.DEFAULT_ESP_MOUNTPOINTS,
    fstype: str = settings.DEFAULT_ESP_FSTYPE,
) -> Optional[str]:
    if not requires(probe, "findmnt", "blkid"):
        return None
    for mountpoint in mountpoints:
        source = probe.mount_source(mountpoint, containing=True)
        if not source or not probe.is_block_device(source):
            continue
        found = probe.filesystem_type(source)
        if found and fstype.lower() in found.lower():
            log.debug(f"{mountpoint} is backed by {fstype} device {source}")
            return source
    return None


def flagged_esp(
    probe,
    mountpoints: Sequence[str] = settings.DEFAULT_ESP_MOUNTPOINTS,
    fstype: str = settings.DEFAULT_ESP_FSTYPE,
) -> Optional[str]:
    if not requires(probe, "blkid", "lsblk"):
        return None
    for device in probe.devices_with_fstype(fstype):
        if not probe.is_block_device(device):
            continue
        if is_esp_partition(probe.partition_flags(device), probe.partition_type(device)):
            return device
    return None


def first_esp_candidate(
    probe,
    mountpoints: Sequence[str] = settings.DEFAULT_ESP_MOUNTPOINTS,
    fstype: str = settings.DEFAULT_ESP_FSTYPE,
) -> Optional[str]:
    if not requires(probe, "blkid"):
        return None
    candidates = probe.devices_with_fstype(fstype)
    if candidates:
        return candidates[0]
    return None


ESP_STEPS = (mounted_esp, flagged_esp, first_esp_candidate)


def find_esp(
    probe,
    mountpoints: Sequence[str] = settings.DEFAULT_ESP_MOUNTPOINTS,
    fstype: str = settings.DEFAULT_ESP_FSTYPE,
) -> Optional[str]:
    """Device node of the ESP, or None when nothing looks like one."""
    return first_success(ESP_STEPS, probe, mountpoints=mountpoints, fstype=fstype)


def locate_esp(
    probe,
    *,
    device_file: str,
    mountpoints: Sequence[str] = settings.DEFAULT_ESP_MOUNTPOINTS,
    fstype: str = settings.DEFAULT_ESP_FSTYPE,
) -> str:
    """Like :func:`find_esp` but raises :class:`EspNotFoundError`."""
    esp = find_esp(probe, mountpoints=mountpoints, fstype=fstype)
    if not esp:
        raise EspNotFoundError(device_file, fstype)
    return esp
