"""Settings storage for the boot device generator."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "BOOT_DEVICE_SETTINGS_PATH",
        Path.home() / ".config" / "nixos-boot-device" / "settings.json",
    )
)
ENV_DEVICE_FILE = "BOOT_DEVICE_FILE"

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_DEVICE_FILE = "/etc/nixos/boot-device"
DEFAULT_ESP_MOUNTPOINTS = ("/boot", "/boot/efi")
DEFAULT_ESP_FSTYPE = "vfat"
DEFAULT_FALLBACK_DISK = "/dev/sda"

DEFAULT_SETTINGS: dict[str, Any] = {
    "device_file": DEFAULT_DEVICE_FILE,
    "esp_mountpoints": list(DEFAULT_ESP_MOUNTPOINTS),
    "esp_fstype": DEFAULT_ESP_FSTYPE,
    "fallback_disk": DEFAULT_FALLBACK_DISK,
    "log_dir": None,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_device_file() -> str:
    """The file the evaluator reads; the environment wins over settings.json."""
    return os.environ.get(ENV_DEVICE_FILE) or get_setting(
        "device_file", DEFAULT_DEVICE_FILE
    )


def get_esp_mountpoints() -> tuple[str, ...]:
    value = get_setting("esp_mountpoints", DEFAULT_ESP_MOUNTPOINTS)
    if isinstance(value, str):
        return (value,)
    return tuple(value or ())


def get_esp_fstype() -> str:
    return get_setting("esp_fstype") or DEFAULT_ESP_FSTYPE


def get_fallback_disk() -> str:
    return get_setting("fallback_disk") or DEFAULT_FALLBACK_DISK


load_settings()
