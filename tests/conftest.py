"""
Pytest configuration and shared fixtures for nixos-boot-device tests.

This module provides a fake system probe and common topologies used across
all test modules.
"""

from typing import Dict, Iterable, List, Optional

import pytest
from loguru import logger

from boot_device.config import settings


DEFAULT_TOOLS = ("findmnt", "blkid", "lsblk")


class FakeProbe:
    """In-memory stand-in for SystemProbe describing a synthetic machine.

    Every query honours tool availability the same way SystemProbe does: a
    missing tool answers None or an empty list.
    """

    def __init__(
        self,
        *,
        efi: bool = False,
        tools: Iterable[str] = DEFAULT_TOOLS,
        mounts: Optional[Dict[str, str]] = None,
        block_devices: Iterable[str] = (),
        fstypes: Optional[Dict[str, str]] = None,
        uuids: Optional[Dict[str, str]] = None,
        partflags: Optional[Dict[str, str]] = None,
        parttypes: Optional[Dict[str, str]] = None,
        types: Optional[Dict[str, str]] = None,
        parents: Optional[Dict[str, str]] = None,
        ancestors: Optional[Dict[str, List[dict]]] = None,
        disks: Optional[List[dict]] = None,
        disk_mountpoints: Optional[Dict[str, List[str]]] = None,
        kernel_disks: Iterable[str] = (),
        by_id: Optional[Dict[str, str]] = None,
    ) -> None:
        self.efi = efi
        self.tools = set(tools)
        self.mounts = mounts or {}
        self.block_devices = set(block_devices)
        self.fstypes = fstypes or {}
        self.uuids = uuids or {}
        self.partflags = partflags or {}
        self.parttypes = parttypes or {}
        self.types = types or {}
        self.parents = parents or {}
        self._ancestors = ancestors or {}
        self.disks = disks or []
        self.disk_mountpoints = disk_mountpoints or {}
        self._kernel_disks = list(kernel_disks)
        self.by_id = by_id or {}
        self.calls: List[str] = []

    def has_tool(self, name: str) -> bool:
        return name in self.tools

    def firmware_marker_present(self) -> bool:
        return self.efi

    def mount_source(self, target: str, *, containing: bool = False) -> Optional[str]:
        self.calls.append(f"mount_source:{target}")
        if containing and not self.has_tool("findmnt"):
            return None
        return self.mounts.get(target)

    def mount_target(self, device: str) -> Optional[str]:
        if not self.has_tool("findmnt"):
            return None
        return next((target for target, source in self.mounts.items() if source == device), None)

    def is_block_device(self, path: str) -> bool:
        return path in self.block_devices

    def filesystem_type(self, device: str) -> Optional[str]:
        return self.fstypes.get(device) if self.has_tool("blkid") else None

    def filesystem_uuid(self, device: str) -> Optional[str]:
        return self.uuids.get(device) if self.has_tool("blkid") else None

    def devices_with_fstype(self, fstype: str) -> List[str]:
        if not self.has_tool("blkid"):
            return []
        return [device for device, found in self.fstypes.items() if found == fstype]

    def partition_flags(self, device: str) -> Optional[str]:
        return self.partflags.get(device) if self.has_tool("lsblk") else None

    def partition_type(self, device: str) -> Optional[str]:
        return self.parttypes.get(device) if self.has_tool("lsblk") else None

    def device_type(self, device: str) -> Optional[str]:
        """Unlisted nodes count as whole disks."""
        if not self.has_tool("lsblk"):
            return None
        return self.types.get(device, "disk")

    def parent_name(self, device: str) -> Optional[str]:
        self.calls.append(f"parent_name:{device}")
        return self.parents.get(device) if self.has_tool("lsblk") else None

    def ancestors(self, device: str) -> List[dict]:
        return self._ancestors.get(device, []) if self.has_tool("lsblk") else []

    def whole_disks(self) -> List[dict]:
        self.calls.append("whole_disks")
        return list(self.disks) if self.has_tool("lsblk") else []

    def mountpoints(self, disk: str) -> List[str]:
        return self.disk_mountpoints.get(disk, []) if self.has_tool("lsblk") else []

    def kernel_disks(self) -> List[str]:
        return list(self._kernel_disks)

    def by_id_aliases(self, device: str) -> List[str]:
        return sorted(link for link, target in self.by_id.items() if target == device)


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Run every test against the built-in defaults, not the host's settings."""
    monkeypatch.delenv(settings.ENV_DEVICE_FILE, raising=False)
    monkeypatch.delenv("BOOT_DEVICE_LOG_DIR", raising=False)
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks bound to the captured streams of a finished test."""
    yield
    logger.remove()


# ==============================================================================
# Topologies
# ==============================================================================


@pytest.fixture
def fake_probe():
    """The FakeProbe class, for tests that build their own topology."""
    return FakeProbe


@pytest.fixture
def bios_probe() -> FakeProbe:
    """
    Legacy BIOS machine with root on /dev/sda2 of the only fixed disk.

    /dev/sdb is a removable USB stick.
    """
    return FakeProbe(
        efi=False,
        mounts={"/": "/dev/sda2"},
        block_devices={"/dev/sda", "/dev/sda1", "/dev/sda2", "/dev/sdb", "/dev/sdb1"},
        fstypes={"/dev/sda2": "ext4", "/dev/sdb1": "vfat"},
        uuids={"/dev/sda2": "deadbeef-1234-5678-90ab-cdef12345678", "/dev/sdb1": "1234-5678"},
        parents={"/dev/sda1": "sda", "/dev/sda2": "sda", "/dev/sdb1": "sdb"},
        disks=[
            {"name": "sda", "type": "disk", "rm": False},
            {"name": "sdb", "type": "disk", "rm": True},
        ],
        disk_mountpoints={"/dev/sda": ["/"]},
        kernel_disks=["/dev/sda"],
    )


@pytest.fixture
def uefi_probe() -> FakeProbe:
    """
    UEFI machine with the ESP /dev/nvme0n1p1 mounted at /boot/efi.
    """
    return FakeProbe(
        efi=True,
        mounts={
            "/": "/dev/nvme0n1p2",
            "/boot": "/dev/nvme0n1p2",
            "/boot/efi": "/dev/nvme0n1p1",
        },
        block_devices={"/dev/nvme0n1", "/dev/nvme0n1p1", "/dev/nvme0n1p2"},
        fstypes={"/dev/nvme0n1p1": "vfat", "/dev/nvme0n1p2": "ext4"},
        uuids={"/dev/nvme0n1p1": "ABCD-1234"},
        parttypes={"/dev/nvme0n1p1": "c12a7328-f81f-11d2-ba4b-00a0c93ec93b"},
        parents={"/dev/nvme0n1p1": "nvme0n1", "/dev/nvme0n1p2": "nvme0n1"},
        disks=[{"name": "nvme0n1", "type": "disk", "rm": False}],
        by_id={
            "/dev/disk/by-id/nvme-Samsung_SSD_980_S64-part1": "/dev/nvme0n1p1",
            "/dev/disk/by-id/nvme-Samsung_SSD_980_S64": "/dev/nvme0n1",
        },
    )
