"""Turn raw device nodes into paths that survive reboots.

Two separate policies:

    - ESP (UEFI):        by-uuid -> by-id -> raw node
    - whole disk (BIOS): by-id   -> by-uuid -> raw node
"""

from __future__ import annotations

from typing import Optional

from boot_device.domain.models import BY_UUID_PREFIX
from boot_device.logging import LoggerFactory
from boot_device.storage.search import first_success

log = LoggerFactory.for_detection("resolve")


def by_uuid_path(probe, device: str) -> Optional[str]:
    if not probe.has_tool("blkid"):
        return None
    uuid = probe.filesystem_uuid(device)
    if uuid:
        return f"{BY_UUID_PREFIX}{uuid}"
    return None


def by_id_path(probe, device: str) -> Optional[str]:
    aliases = probe.by_id_aliases(device)
    if aliases:
        return aliases[0]
    return None


ESP_POLICY = (by_uuid_path, by_id_path)
WHOLE_DISK_POLICY = (by_id_path, by_uuid_path)


def resolve_esp_path(probe, device: str) -> str:
    """Stable path of an ESP partition; the UUID wins over by-id."""
    return first_success(ESP_POLICY, probe, device) or device


def resolve_disk_path(probe, device: str) -> str:
    """Stable path of a whole disk; by-id wins over the UUID."""
    return first_success(WHOLE_DISK_POLICY, probe, device) or device
