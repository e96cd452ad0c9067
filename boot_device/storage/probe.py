"""System introspection for boot device detection.

``SystemProbe`` wraps every tool and kernel interface the heuristics consult:

    - findmnt: source of a mount point (falls back to /proc/mounts) and
      mount point of a device
    - blkid: filesystem type, UUID, and devices of a filesystem type
    - lsblk: device type, partition flags/type, parent, ancestor walk,
      whole disks
    - /proc/partitions and /sys/block: kernel view of physical disks
    - /dev/disk/by-id: stable aliases
    - /sys/firmware/efi: firmware marker

Each tool is an optional capability. A missing tool, a non-zero exit status or
output that does not parse is reported as "no answer" (None or an empty list);
probe methods never raise for those. Callers decide what to do next.

Example:
    >>> probe = SystemProbe()
    >>> probe.mount_source("/")
    '/dev/nvme0n1p2'
    >>> probe.filesystem_uuid("/dev/nvme0n1p1")
    'ABCD-1234'
"""

from __future__ import annotations

import json
import os
import shutil
import stat
import subprocess
from pathlib import Path
from typing import Callable, Optional

from boot_device.domain.models import BY_ID_DIR, BlockDevice
from boot_device.logging import LoggerFactory

log = LoggerFactory.for_probe()


def _as_flag(value) -> bool:
    """lsblk reports RM as a JSON bool on new versions and "0"/"1" on old ones."""
    if isinstance(value, str):
        return value.strip() not in ("", "0", "false")
    return bool(value)


def _first_line(output: Optional[str]) -> Optional[str]:
    if not output:
        return None
    for line in output.splitlines():
        line = line.strip()
        if line:
            return line
    return None


def _walk(devices: list[dict]):
    for device in devices:
        yield device
        yield from _walk(device.get("children", []) or [])


class SystemProbe:
    """Read-only view of the running system's firmware, mounts and block devices."""

    def __init__(
        self,
        *,
        sys_root: Path | str = "/sys",
        proc_root: Path | str = "/proc",
        by_id_dir: Path | str = BY_ID_DIR,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.sys_root = Path(sys_root)
        self.proc_root = Path(proc_root)
        self.by_id_dir = Path(by_id_dir)
        self._which = which
        self._tools: dict[str, bool] = {}

    # ------------------------------------------------------------------
    # Command plumbing
    # ------------------------------------------------------------------

    def has_tool(self, name: str) -> bool:
        if name not in self._tools:
            self._tools[name] = self._which(name) is not None
            if not self._tools[name]:
                log.debug(f"{name} is not available")
        return self._tools[name]

    def run(self, command: list[str]) -> Optional[str]:
        """Run an introspection command, returning stdout or None."""
        if not self.has_tool(command[0]):
            return None
        log.debug(f"Running command: {' '.join(command)}")
        try:
            result = subprocess.run(command, check=False, text=True, capture_output=True)
        except OSError as error:
            log.debug(f"Command failed to start: {error}")
            return None
        if result.stdout:
            log.trace(f"stdout: {result.stdout.strip()}")
        if result.stderr:
            log.trace(f"stderr: {result.stderr.strip()}")
        if result.returncode != 0:
            log.debug(f"{command[0]} exited with return code {result.returncode}")
            return None
        return result.stdout

    def _lsblk_json(self, command: list[str]) -> list[dict]:
        output = self.run(command)
        if not output:
            return []
        try:
            data = json.loads(output)
        except json.JSONDecodeError as error:
            log.debug(f"lsblk returned invalid JSON: {error}")
            return []
        if not isinstance(data, dict):
            return []
        return data.get("blockdevices", []) or []

    # ------------------------------------------------------------------
    # Firmware and mounts
    # ------------------------------------------------------------------

    def firmware_marker_present(self) -> bool:
        return (self.sys_root / "firmware" / "efi").is_dir()

    def mount_source(self, target: str, *, containing: bool = False) -> Optional[str]:
        """Source device of the filesystem mounted at ``target``.

        With ``containing=True`` the filesystem that contains ``target`` is
        reported even when ``target`` is not a mount point itself; that needs
        findmnt.
        """
        if self.has_tool("findmnt"):
            command = ["findmnt", "-n", "-o", "SOURCE"]
            command += ["--target", target] if containing else [target]
            source = _first_line(self.run(command))
            if source:
                # btrfs subvolumes are reported as /dev/sda2[/@]
                return source.split("[", 1)[0]
            return None
        if containing:
            return None
        return self._proc_mount_source(target)

    def mount_target(self, device: str) -> Optional[str]:
        """First mount point of ``device``, or None when it is not mounted."""
        return _first_line(self.run(["findmnt", "-n", "-o", "TARGET", "--source", device]))

    def _proc_mount_source(self, target: str) -> Optional[str]:
        try:
            with open(self.proc_root / "mounts", "r", encoding="utf-8") as mounts_file:
                for line in mounts_file:
                    parts = line.split()
                    if len(parts) > 1 and parts[1] == target:
                        return parts[0]
        except OSError as error:
            log.debug(f"Cannot read mounts: {error}")
        return None

    def is_block_device(self, path: str) -> bool:
        try:
            return stat.S_ISBLK(os.stat(path).st_mode)
        except OSError:
            return False

    # ------------------------------------------------------------------
    # blkid
    # ------------------------------------------------------------------

    def _blkid_value(self, device: str, tag: str) -> Optional[str]:
        return _first_line(self.run(["blkid", "-s", tag, "-o", "value", device]))

    def filesystem_type(self, device: str) -> Optional[str]:
        return self._blkid_value(device, "TYPE")

    def filesystem_uuid(self, device: str) -> Optional[str]:
        return self._blkid_value(device, "UUID")

    def devices_with_fstype(self, fstype: str) -> list[str]:
        output = self.run(["blkid", "-t", f"TYPE={fstype}", "-o", "device"])
        if not output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    # ------------------------------------------------------------------
    # lsblk
    # ------------------------------------------------------------------

    def _lsblk_column(self, device: str, column: str) -> Optional[str]:
        # -d: only the queried node, not its partitions or holders
        return _first_line(self.run(["lsblk", "-dno", column, device]))

    def device_type(self, device: str) -> Optional[str]:
        """lsblk TYPE of a device node: disk, part, lvm, crypt, loop, ..."""
        return self._lsblk_column(device, "TYPE")

    def partition_flags(self, device: str) -> Optional[str]:
        return self._lsblk_column(device, "PARTFLAGS")

    def partition_type(self, device: str) -> Optional[str]:
        return self._lsblk_column(device, "PARTTYPE")

    def parent_name(self, device: str) -> Optional[str]:
        """Kernel name of the parent device (PKNAME), e.g. nvme0n1 for nvme0n1p3."""
        return self._lsblk_column(device, "PKNAME")

    def ancestors(self, device: str) -> list[dict]:
        """``device`` followed by everything it sits on, nearest first."""
        tree = self._lsblk_json(["lsblk", "-J", "-s", "-o", "NAME,TYPE", device])
        return list(_walk(tree))

    def whole_disks(self) -> list[dict]:
        """Top-level devices as dicts with name, type and a boolean rm."""
        disks = []
        for device in self._lsblk_json(["lsblk", "-J", "-d", "-o", "NAME,TYPE,RM"]):
            if not device.get("name"):
                continue
            disks.append(
                {
                    "name": device["name"],
                    "type": device.get("type"),
                    "rm": _as_flag(device.get("rm")),
                }
            )
        return disks

    def mountpoints(self, disk: str) -> list[str]:
        """Mount points of ``disk`` and all of its partitions."""
        tree = self._lsblk_json(["lsblk", "-J", "-o", "NAME,MOUNTPOINT", disk])
        return [node["mountpoint"] for node in _walk(tree) if node.get("mountpoint")]

    # ------------------------------------------------------------------
    # Kernel metadata
    # ------------------------------------------------------------------

    def kernel_disks(self) -> list[str]:
        """Non-removable physical disks listed in /proc/partitions, in order.

        A name counts as a whole disk when /sys/block has an entry for it; it is
        physical when that entry has a backing ``device`` (loop, ram, zram and
        device-mapper nodes do not).
        """
        try:
            lines = (self.proc_root / "partitions").read_text(encoding="utf-8").splitlines()
        except OSError as error:
            log.debug(f"Cannot read partitions: {error}")
            return []
        disks = []
        for line in lines:
            fields = line.split()
            if len(fields) != 4 or not fields[0].isdigit():
                continue
            name = fields[3]
            block_dir = self.sys_root / "block" / name
            if not block_dir.is_dir() or not (block_dir / "device").exists():
                continue
            try:
                removable = (block_dir / "removable").read_text(encoding="utf-8").strip()
            except OSError:
                continue
            if removable == "0":
                disks.append(f"/dev/{name}")
        return disks

    # ------------------------------------------------------------------
    # Stable aliases
    # ------------------------------------------------------------------

    def by_id_aliases(self, device: str) -> list[str]:
        """Links in /dev/disk/by-id that resolve to ``device``, sorted by name."""
        if not self.by_id_dir.is_dir():
            return []
        target = os.path.realpath(device)
        aliases = []
        for link in sorted(self.by_id_dir.iterdir()):
            if os.path.realpath(link) == target:
                aliases.append(str(link))
        return aliases


def describe(probe, device: str) -> BlockDevice:
    """Collect what ``probe`` knows about ``device`` for log output."""
    parent = probe.parent_name(device)
    return BlockDevice(
        path=device,
        fstype=probe.filesystem_type(device),
        uuid=probe.filesystem_uuid(device),
        mountpoint=probe.mount_target(device),
        partflags=probe.partition_flags(device),
        parent=f"/dev/{parent}" if parent else None,
        by_id=tuple(probe.by_id_aliases(device)),
    )
