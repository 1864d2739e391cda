"""Tests for domain/models.py."""

from pathlib import Path

import pytest

from image_installer.domain.models import (
    AcquiredImage,
    ChecksumReport,
    Credentials,
    DelegateResult,
    MountedImage,
    PartitionPlan,
    RunConfiguration,
    SignatureScheme,
)
from image_installer.exceptions import InvalidArgumentsError, PartitionResolutionError


class TestRunConfiguration:
    """Tests for RunConfiguration.from_inputs()."""

    def test_credentials_paired(self):
        config = RunConfiguration.from_inputs(
            image_ref="scp://host/i.iso", username="admin", password="pw"
        )
        assert config.credentials == Credentials("admin", "pw")

    @pytest.mark.parametrize(
        "username, password", [("admin", None), (None, "pw"), ("admin", "")]
    )
    def test_unpaired_credentials_rejected(self, username, password):
        with pytest.raises(InvalidArgumentsError, match="together"):
            RunConfiguration.from_inputs(
                image_ref="scp://host/i.iso", username=username, password=password
            )

    def test_empty_values_normalized(self):
        config = RunConfiguration.from_inputs(image_ref="", routing_domain="")
        assert config.image_ref is None
        assert config.routing_domain is None
        assert config.credentials is None
        assert config.assume_defaults is False

    def test_password_hidden_from_repr(self):
        assert "s3cret" not in repr(Credentials("admin", "s3cret"))


class TestPartitionPlan:
    """Tests for PartitionPlan.parse()."""

    def test_new_with_devices(self):
        assert PartitionPlan.parse("new sda1 sda\n") == PartitionPlan("new", "sda1", "sda")

    def test_category_only(self):
        plan = PartitionPlan.parse("  old  ")
        assert plan.category == "old"
        assert plan.partition is None
        assert plan.drive is None

    def test_unknown_category_kept_raw(self):
        assert PartitionPlan.parse("raid md0").category == "raid"

    def test_empty_rejected(self):
        with pytest.raises(PartitionResolutionError):
            PartitionPlan.parse("")


class TestValueObjects:
    def test_signature_suffix(self):
        assert SignatureScheme.MINISIGN.suffix == ".minisig"
        assert SignatureScheme.OPENPGP.suffix == ".asc"

    def test_has_signature(self):
        assert not AcquiredImage(Path("/tmp/i.iso")).has_signature
        assert AcquiredImage(
            Path("/tmp/i.iso"), Path("/tmp/i.iso.asc"), SignatureScheme.OPENPGP
        ).has_signature

    def test_mounted_image_env(self):
        roots = MountedImage(Path("/mnt/cdrom"), Path("/mnt/squashfs"))
        assert roots.as_env() == {
            "IMAGE_CONTAINER_ROOT": "/mnt/cdrom",
            "IMAGE_ROOTFS_ROOT": "/mnt/squashfs",
        }

    def test_checksum_report(self):
        assert ChecksumReport("sha256", 3).passed
        assert not ChecksumReport("sha256", 3, ("a",)).passed

    def test_delegate_result(self):
        assert DelegateResult(("true",), 0).failure_code is None
        assert DelegateResult(("false",), 1).failure_code == 1
