import pytest
from pydantic import ValidationError

from ol_sftp.lib.aws.transfer_helper import transfer_regions
from ol_sftp.lib.ol_types import AWSBase

VALID_TAGS = {"OU": "operations", "Environment": "test"}


def test_tag_validation():
    with pytest.raises(ValueError):  # noqa: PT011
        AWSBase(tags={"foo": "bar", "Environment": "test"})
    with pytest.raises(ValueError):  # noqa: PT011
        AWSBase(tags={"foo": "bar", "OU": "test"})
    with pytest.raises(ValidationError):
        AWSBase(tags={"Environment": "test", "OU": "test"})


def test_region_validation():
    with pytest.raises(ValueError):  # noqa: PT011
        AWSBase(tags=VALID_TAGS, region="us-east-0")


def test_transfer_regions_include_default_region():
    assert "us-east-1" in transfer_regions()


def test_merged_tags():
    base_config = AWSBase(tags=VALID_TAGS)
    new_tags = base_config.merged_tags({"Foo": "bar"}, {"SFTPUser": "ann"})
    assert new_tags == {
        "OU": "operations",
        "Environment": "test",
        "pulumi_managed": "true",
        "Foo": "bar",
        "SFTPUser": "ann",
    }


def test_pulumi_managed_tag():
    base_config = AWSBase(tags=dict(VALID_TAGS))
    assert base_config.tags.pop("pulumi_managed") == "true"


def test_recommended_tags_are_kept(mock_tags):
    base_config = AWSBase(tags=mock_tags)
    assert base_config.tags["Application"] == "sftp"


def test_missing_tags_are_named():
    with pytest.raises(ValidationError, match="Missing required tags: OU"):
        AWSBase(tags={"Environment": "test"})


def test_merged_tags_leave_base_tags_unchanged():
    base_config = AWSBase(tags=VALID_TAGS)
    base_config.merged_tags({"Name": "sftp-test"})
    assert "Name" not in base_config.tags
