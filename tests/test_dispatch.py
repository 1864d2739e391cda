"""Tests for services/dispatch.py and services/partition.py."""

from unittest.mock import Mock, patch

import pytest

from image_installer.domain.models import PartitionCategory, PartitionPlan
from image_installer.exceptions import (
    DelegateFailedError,
    DeviceNotFoundError,
    PartitionResolutionError,
    UnknownPartitionTypeError,
)
from image_installer.services import dispatch
from image_installer.services.dispatch import dispatch_install
from image_installer.services.partition import resolve_partition
from image_installer.storage.tracker import ResourceTracker


@pytest.fixture
def block_devices(mocker):
    """Pretend /dev/sda and /dev/sda1 exist as block devices."""
    existing = {"/dev/sda", "/dev/sda1"}

    def _validate(name):
        if not name or dispatch.device_path(name).as_posix() not in existing:
            raise DeviceNotFoundError(name or "(empty name)")

    return mocker.patch(
        "image_installer.services.dispatch.validate_block_device", side_effect=_validate
    )


class TestDispatchNew:
    """The ``new`` category."""

    def test_install_then_postinstall(self, recording_runner, block_devices):
        runner = recording_runner()
        with patch("image_installer.services.dispatch.run_delegate", runner):
            category = dispatch_install(PartitionPlan("new", "sda1", "sda"))

        assert category is PartitionCategory.NEW
        assert runner.calls == [
            ("install-image-new", "sda1", "sda"),
            ("install-postinst-new", "sda", "sda1", "union"),
        ]

    def test_nonexistent_device_fails_before_install(self, recording_runner, block_devices):
        runner = recording_runner()
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(DeviceNotFoundError, match="sdz1"):
                dispatch_install(PartitionPlan("new", "sdz1", "sda"))

        assert runner.calls == []

    def test_missing_drive_is_rejected(self, recording_runner):
        runner = recording_runner()
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(PartitionResolutionError):
                dispatch_install(PartitionPlan("new", "sda1"))
        assert runner.calls == []

    def test_install_failure_stops_before_postinstall(self, recording_runner, block_devices):
        runner = recording_runner({"install-image-new": 3})
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(DelegateFailedError) as excinfo:
                dispatch_install(PartitionPlan("new", "sda1", "sda"))

        assert excinfo.value.returncode == 3
        assert runner.programs() == ["install-image-new"]

    def test_postinstall_failure_is_fatal(self, recording_runner, block_devices):
        runner = recording_runner({"install-postinst-new": 1})
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(DelegateFailedError, match="post-install"):
                dispatch_install(PartitionPlan("new", "sda1", "sda"))


class TestDispatchExisting:
    """The ``union`` and ``old`` categories."""

    @pytest.mark.parametrize("category", ["union", "old"])
    def test_install_existing(self, recording_runner, category):
        runner = recording_runner()
        env = {"IMAGE_CONTAINER_ROOT": "/mnt/cdrom"}
        with patch("image_installer.services.dispatch.run_delegate", runner):
            result = dispatch_install(PartitionPlan(category), env=env)

        assert result.value == category
        assert runner.calls == [("install-image-existing", category)]
        assert runner.envs == [env]

    def test_failure_is_fatal(self, recording_runner):
        runner = recording_runner({"install-image-existing": 1})
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(DelegateFailedError):
                dispatch_install(PartitionPlan("union"))


class TestUnknownCategory:
    def test_unknown_partition_type(self, recording_runner):
        runner = recording_runner()
        with patch("image_installer.services.dispatch.run_delegate", runner):
            with pytest.raises(UnknownPartitionTypeError, match="Unknown partition type"):
                dispatch_install(PartitionPlan("raid"))
        assert runner.calls == []


class TestValidateBlockDevice:
    def test_missing_device(self, tmp_path):
        with pytest.raises(DeviceNotFoundError):
            dispatch.validate_block_device(str(tmp_path / "not-a-device"))

    def test_empty_name(self):
        with pytest.raises(DeviceNotFoundError, match="empty name"):
            dispatch.validate_block_device(None)

    def test_device_path(self):
        assert dispatch.device_path("sda1").as_posix() == "/dev/sda1"
        assert dispatch.device_path("/dev/nvme0n1p2").as_posix() == "/dev/nvme0n1p2"


class TestResolvePartition:
    """Tests for resolve_partition()."""

    def _writer(self, text):
        def _run(argv):
            with open(argv[1], "w") as channel:
                channel.write(text)
            return 0

        return _run

    def test_reads_plan_once_and_removes_channel(self, recording_runner):
        runner = recording_runner({"install-get-partition": self._writer("new sda1 sda\n")})
        tracker = ResourceTracker(unmount=Mock(return_value=True))
        with patch("image_installer.services.partition.run_delegate", runner):
            plan = resolve_partition(tracker, env={"IMAGE_ROOTFS_ROOT": "/mnt/squashfs"})

        assert plan == PartitionPlan("new", "sda1", "sda")
        (channel,) = tracker.temp_paths
        assert not channel.exists()
        assert runner.envs == [{"IMAGE_ROOTFS_ROOT": "/mnt/squashfs"}]

    def test_category_only(self, recording_runner):
        runner = recording_runner({"install-get-partition": self._writer("union")})
        tracker = ResourceTracker(unmount=Mock(return_value=True))
        with patch("image_installer.services.partition.run_delegate", runner):
            plan = resolve_partition(tracker)

        assert plan == PartitionPlan("union")

    def test_resolver_failure(self, recording_runner):
        runner = recording_runner({"install-get-partition": 1})
        tracker = ResourceTracker(unmount=Mock(return_value=True))
        with patch("image_installer.services.partition.run_delegate", runner):
            with pytest.raises(PartitionResolutionError, match="exit status 1"):
                resolve_partition(tracker)

    def test_empty_result(self, recording_runner):
        runner = recording_runner({"install-get-partition": self._writer("\n")})
        tracker = ResourceTracker(unmount=Mock(return_value=True))
        with patch("image_installer.services.partition.run_delegate", runner):
            with pytest.raises(PartitionResolutionError, match="no result"):
                resolve_partition(tracker)
