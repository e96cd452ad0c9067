"""Locate the whole disk backing the root filesystem on BIOS systems.

When root sits on a block device, its disk is derived from lsblk topology
(PKNAME when that is a disk, then an ancestor walk) or, without lsblk, from
the device name.
Otherwise, or when that fails, the non-removable disks of the system are
enumerated instead.
"""

from __future__ import annotations

import re
from typing import Optional

from boot_device.logging import LoggerFactory
from boot_device.storage.exceptions import BiosDiskNotFoundError
from boot_device.storage.search import first_success, requires

ROOT_MOUNTPOINT = "/"

# /dev/sda2 -> /dev/sda, /dev/nvme0n1p7 -> /dev/nvme0n1, /dev/mmcblk0p1 -> /dev/mmcblk0
PARTITION_PATTERNS = (
    re.compile(r"^(/dev/[a-z]+)[0-9]+$"),
    re.compile(r"^(/dev/(?:nvme[0-9]+n[0-9]+|mmcblk[0-9]+))p[0-9]+$"),
)

log = LoggerFactory.for_detection("bios")


def strip_partition_suffix(device: str) -> Optional[str]:
    for pattern in PARTITION_PATTERNS:
        match = pattern.match(device)
        if match:
            return match.group(1)
    return None


# ------------------------------------------------------------------
# Root device is a block device
# ------------------------------------------------------------------


def parent_of(probe, source: str) -> Optional[str]:
    if not requires(probe, "lsblk"):
        return None
    pkname = probe.parent_name(source)
    if not pkname:
        return None
    parent = f"/dev/{pkname}"
    # LVM and dm-crypt roots report the partition or another dm node here
    if probe.device_type(parent) != "disk":
        log.debug(f"{parent} is not a whole disk")
        return None
    return parent


def disk_ancestor_of(probe, source: str) -> Optional[str]:
    if not requires(probe, "lsblk"):
        return None
    for node in probe.ancestors(source):
        if node.get("type") == "disk" and node.get("name"):
            return f"/dev/{node['name']}"
    return None


def disk_by_name(probe, source: str) -> Optional[str]:
    return strip_partition_suffix(source)


ROOT_DEVICE_STEPS = (parent_of, disk_ancestor_of, disk_by_name)


# ------------------------------------------------------------------
# Enumerating non-removable disks
# ------------------------------------------------------------------


def _fixed_disks(probe) -> list[str]:
    return [
        f"/dev/{disk['name']}"
        for disk in probe.whole_disks()
        if disk.get("type") == "disk" and not disk.get("rm")
    ]


def only_fixed_disk(probe) -> Optional[str]:
    if not requires(probe, "lsblk"):
        return None
    disks = _fixed_disks(probe)
    if len(disks) == 1:
        return disks[0]
    return None


def fixed_disk_with_root(probe) -> Optional[str]:
    if not requires(probe, "lsblk"):
        return None
    for disk in _fixed_disks(probe):
        if ROOT_MOUNTPOINT in probe.mountpoints(disk):
            return disk
    return None


def first_kernel_disk(probe) -> Optional[str]:
    disks = probe.kernel_disks()
    if disks:
        return disks[0]
    return None


ENUMERATION_STEPS = (only_fixed_disk, fixed_disk_with_root, first_kernel_disk)


def find_bios_disk(probe) -> Optional[str]:
    """Whole disk holding /, or None when no heuristic could tell."""
    source = probe.mount_source(ROOT_MOUNTPOINT)
    if not source:
        log.debug("Nothing is mounted at /")
        return None
    log.debug(f"Root filesystem is mounted from {source}")

    if probe.is_block_device(source):
        disk = first_success(ROOT_DEVICE_STEPS, probe, source)
        if disk:
            return disk
    else:
        log.debug(f"{source} is not a block device")

    return first_success(ENUMERATION_STEPS, probe)


def locate_bios_disk(probe) -> str:
    """Like :func:`find_bios_disk` but raises :class:`BiosDiskNotFoundError`."""
    disk = find_bios_disk(probe)
    if not disk:
        raise BiosDiskNotFoundError(probe.mount_source(ROOT_MOUNTPOINT))
    return disk
