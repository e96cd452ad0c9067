"""Write the boot device line for the NixOS configuration to pick up."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from boot_device.domain.models import BootTarget
from boot_device.logging import LoggerFactory
from boot_device.storage.exceptions import DeviceFileWriteError, UserDeclinedError

DEVICE_FILE_MODE = 0o644
CONFIRM_ANSWERS = {"y", "Y", "yes", "YES"}

log = LoggerFactory.for_writer()


def confirm_write(
    target: BootTarget,
    device_file: str,
    *,
    prompt: Optional[Callable[[str], str]] = None,
) -> None:
    """Ask before overwriting; anything but y/yes raises UserDeclinedError."""
    line = target.to_line()
    ask = prompt or input
    try:
        answer = ask(f"Write '{line}' into {device_file}? [y/N] ")
    except EOFError:
        answer = ""
    if answer.strip() not in CONFIRM_ANSWERS:
        raise UserDeclinedError(line, device_file)


def write_device_file(target: BootTarget, device_file: str) -> Path:
    """Replace ``device_file`` with the single line of ``target``.

    The line goes to a temporary file next to the destination which is then
    renamed over it. The file ends up world-readable (0644).
    """
    path = Path(device_file)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as handle:
            handle.write(f"{target.to_line()}\n")
        os.chmod(tmp, DEVICE_FILE_MODE)
        os.replace(tmp, path)
    except OSError as error:
        if tmp.exists():
            tmp.unlink()
        raise DeviceFileWriteError(str(path), error.strerror or str(error)) from error
    log.success(f"Wrote {path} -> {target.to_line()}")
    return path
