from __future__ import annotations

from typing import Optional, Sequence

from boot_device.config import settings
from boot_device.domain.models import BootTarget, DetectionResult, FirmwareMode
from boot_device.logging import LoggerFactory, operation_context
from boot_device.storage.bios import locate_bios_disk
from boot_device.storage.esp import locate_esp
from boot_device.storage.exceptions import BiosDiskNotFoundError
from boot_device.storage.firmware import detect_firmware_mode
from boot_device.storage.probe import describe
from boot_device.storage.resolve import resolve_disk_path, resolve_esp_path

log = LoggerFactory.for_detection()


def detect_uefi_target(
    probe,
    *,
    device_file: str,
    mountpoints: Sequence[str],
    fstype: str,
) -> DetectionResult:
    esp = locate_esp(probe, device_file=device_file, mountpoints=mountpoints, fstype=fstype)
    path = resolve_esp_path(probe, esp)
    log.info(f"Chosen ESP: {esp}")
    log.debug(f"ESP details: {describe(probe, esp).summary()}")
    return DetectionResult(
        firmware=FirmwareMode.UEFI,
        device=esp,
        target=BootTarget(FirmwareMode.UEFI, path),
    )


def detect_bios_target(probe, *, fallback_disk: str) -> DetectionResult:
    fallback_used = False
    try:
        disk = locate_bios_disk(probe)
    except BiosDiskNotFoundError as error:
        log.warning(f"{error}. Defaulting to {fallback_disk}")
        disk = fallback_disk
        fallback_used = True
    path = resolve_disk_path(probe, disk)
    log.info(f"Chosen BIOS disk: {disk}")
    log.debug(f"Disk details: {describe(probe, disk).summary()}")
    return DetectionResult(
        firmware=FirmwareMode.BIOS,
        device=disk,
        target=BootTarget(FirmwareMode.BIOS, path),
        fallback_used=fallback_used,
    )


def detect_boot_target(
    probe,
    *,
    device_file: Optional[str] = None,
    mountpoints: Optional[Sequence[str]] = None,
    fstype: Optional[str] = None,
    fallback_disk: Optional[str] = None,
) -> DetectionResult:
    """Run the whole detection pipeline against ``probe``.

    Unset keyword arguments come from the settings module.

    Raises:
        EspNotFoundError: UEFI system without anything that looks like an ESP
    """
    device_file = device_file or settings.get_device_file()
    with operation_context("detect") as op_log:
        firmware = detect_firmware_mode(probe)
        log.info(f"Detected platform: {firmware.label}")
        if firmware is FirmwareMode.UEFI:
            result = detect_uefi_target(
                probe,
                device_file=device_file,
                mountpoints=(
                    settings.get_esp_mountpoints() if mountpoints is None else mountpoints
                ),
                fstype=fstype or settings.get_esp_fstype(),
            )
        else:
            result = detect_bios_target(
                probe, fallback_disk=fallback_disk or settings.get_fallback_disk()
            )
        op_log.debug(f"Boot target: {result.target.to_line()}")
    return result
