import argparse
import os

from boot_device.__version__ import __version__
from boot_device.config import settings
from boot_device.logging import LoggerFactory, setup_logging
from boot_device.services.detection import detect_boot_target
from boot_device.services.loader import plan_loader, read_boot_device_file
from boot_device.services.writer import confirm_write, write_device_file
from boot_device.storage.exceptions import (
    DeviceFileWriteError,
    EspNotFoundError,
    UserDeclinedError,
)
from boot_device.storage.firmware import detect_firmware_mode
from boot_device.storage.probe import SystemProbe

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_DETECTION_FAILED = 2

log = LoggerFactory.for_system()

DESCRIPTION = """\
Generates the boot device file of a shared NixOS configuration, containing either:
  UEFI:/dev/disk/by-uuid/<UUID>  - for UEFI systems (ESP)
  /dev/disk/by-id/<...>          - for BIOS systems (whole disk)
If run without --dry-run the file is written (requires root).
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nixos-boot-device",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Print the chosen value, do not write"
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Write without asking for confirmation"
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="PATH",
        help=f"Device file to write (default: {settings.DEFAULT_DEVICE_FILE})",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Show which bootloader the existing device file selects",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Also log raw command output")
    parser.add_argument("--log-dir", metavar="DIR", help="Also write log files into DIR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def show_plan(probe, device_file: str) -> int:
    entry = read_boot_device_file(device_file)
    firmware = detect_firmware_mode(probe)
    plan = plan_loader(entry, firmware)
    print(f"file:        {device_file}")
    print(f"mode:        {entry.mode}")
    print(f"target:      {entry.target or '-'}")
    print(f"firmware:    {firmware.value}")
    print(f"loader:      {plan.loader}")
    print(f"grub device: {plan.grub_device}")
    print(f"esp device:  {plan.esp_device or '-'}")
    return EXIT_OK


def main(argv=None, probe=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        debug=args.debug,
        trace=args.trace,
        log_dir=args.log_dir or settings.get_setting("log_dir"),
    )
    device_file = args.output or settings.get_device_file()
    probe = probe or SystemProbe()

    if args.show:
        return show_plan(probe, device_file)

    if not args.dry_run and os.geteuid() != 0:
        log.warning(f"Not running as root. You may need sudo to write {device_file}.")

    try:
        result = detect_boot_target(probe, device_file=device_file)
    except EspNotFoundError as error:
        log.error(str(error))
        return EXIT_DETECTION_FAILED

    line = result.target.to_line()
    if args.dry_run:
        log.info(f"DRY RUN: would write to {device_file}:")
        print(line)
        return EXIT_OK

    try:
        if not args.yes:
            confirm_write(result.target, device_file)
        write_device_file(result.target, device_file)
    except UserDeclinedError:
        log.warning("Aborted.")
        return EXIT_ABORTED
    except DeviceFileWriteError as error:
        log.error(str(error))
        return EXIT_ABORTED

    log.info("You can now run: sudo nixos-rebuild switch --install-bootloader")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
