"""Tests for boot_device.services.writer module."""

import os
import stat

import pytest

from boot_device.domain.models import BootTarget, FirmwareMode
from boot_device.services import writer
from boot_device.storage.exceptions import DeviceFileWriteError, UserDeclinedError


UEFI_TARGET = BootTarget(FirmwareMode.UEFI, "/dev/disk/by-uuid/ABCD-1234")
BIOS_TARGET = BootTarget(FirmwareMode.BIOS, "/dev/disk/by-id/ata-ST1000DM010_Z9A1B2C3")


class TestWriteDeviceFile:
    def test_writes_single_line(self, tmp_path):
        device_file = tmp_path / "boot-device"
        writer.write_device_file(UEFI_TARGET, str(device_file))
        assert device_file.read_text() == "UEFI:/dev/disk/by-uuid/ABCD-1234\n"

    def test_bios_line_has_no_prefix(self, tmp_path):
        device_file = tmp_path / "boot-device"
        writer.write_device_file(BIOS_TARGET, str(device_file))
        assert device_file.read_text() == "/dev/disk/by-id/ata-ST1000DM010_Z9A1B2C3\n"

    def test_overwrites_wholesale(self, tmp_path):
        device_file = tmp_path / "boot-device"
        device_file.write_text("UEFI:/dev/sda1\nleftover\n")
        writer.write_device_file(BIOS_TARGET, str(device_file))
        assert device_file.read_text().splitlines() == [BIOS_TARGET.path]

    def test_creates_parent_directory(self, tmp_path):
        device_file = tmp_path / "etc" / "nixos" / "boot-device"
        writer.write_device_file(BIOS_TARGET, str(device_file))
        assert device_file.exists()

    def test_mode_is_0644(self, tmp_path):
        device_file = tmp_path / "boot-device"
        writer.write_device_file(UEFI_TARGET, str(device_file))
        assert stat.S_IMODE(os.stat(device_file).st_mode) == 0o644

    def test_no_temporary_file_left(self, tmp_path):
        writer.write_device_file(UEFI_TARGET, str(tmp_path / "boot-device"))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["boot-device"]

    def test_failure_wrapped_and_cleaned_up(self, tmp_path, mocker):
        device_file = tmp_path / "boot-device"
        device_file.write_text("/dev/sda\n")
        mocker.patch(
            "boot_device.services.writer.os.replace",
            side_effect=PermissionError(13, "Permission denied"),
        )
        with pytest.raises(DeviceFileWriteError) as exc_info:
            writer.write_device_file(UEFI_TARGET, str(device_file))
        assert exc_info.value.reason == "Permission denied"
        assert device_file.read_text() == "/dev/sda\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["boot-device"]


class TestConfirmWrite:
    @pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES", " y "])
    def test_accepted(self, answer):
        writer.confirm_write(UEFI_TARGET, "/etc/nixos/boot-device", prompt=lambda _: answer)

    @pytest.mark.parametrize("answer", ["", "n", "N", "no", "Yes", "sure"])
    def test_declined(self, answer):
        with pytest.raises(UserDeclinedError) as exc_info:
            writer.confirm_write(BIOS_TARGET, "/etc/nixos/boot-device", prompt=lambda _: answer)
        assert exc_info.value.target == BIOS_TARGET.path

    def test_prompt_text(self):
        prompts = []

        def prompt(text):
            prompts.append(text)
            return "y"

        writer.confirm_write(UEFI_TARGET, "/etc/nixos/boot-device", prompt=prompt)
        assert prompts == [
            "Write 'UEFI:/dev/disk/by-uuid/ABCD-1234' into /etc/nixos/boot-device? [y/N] "
        ]

    def test_end_of_input_declines(self):
        def prompt(_text):
            raise EOFError

        with pytest.raises(UserDeclinedError):
            writer.confirm_write(UEFI_TARGET, "/etc/nixos/boot-device", prompt=prompt)

    def test_default_prompt_is_builtin_input(self, mocker):
        ask = mocker.patch("builtins.input", return_value="n")
        with pytest.raises(UserDeclinedError):
            writer.confirm_write(UEFI_TARGET, "/etc/nixos/boot-device")
        ask.assert_called_once()
