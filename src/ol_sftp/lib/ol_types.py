from enum import Enum, unique

from pydantic import BaseModel, field_validator

from ol_sftp.lib.aws.transfer_helper import transfer_regions

REQUIRED_TAGS = {"OU", "Environment"}


@unique
class BusinessUnit(str, Enum):
    """Canonical source of truth for defining valid OU tags.

    We rely on tagging AWS resources with a valid OU to allow for cost allocation to
    different business units.
    """

    data = "data"
    mit_learn = "mit-learn"
    mitx_online = "mitxonline"
    operations = "operations"
    xpro = "mitxpro"


@unique
class Services(str, Enum):
    """Canonical source of truth for defining apps."""

    sftp = "sftp"


class AWSBase(BaseModel):
    """Tags and region shared by the AWS configuration objects in this project.

    Every configuration object is tagged with ``pulumi_managed`` so resources
    declared from it can be told apart from ones created by hand.
    """

    tags: dict[str, str]
    region: str = "us-east-1"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.tags["pulumi_managed"] = "true"

    @field_validator("tags")
    @classmethod
    def enforce_tags(cls, tags: dict[str, str]) -> dict[str, str]:
        missing_tags = REQUIRED_TAGS - tags.keys()
        if missing_tags:
            msg = f"Missing required tags: {', '.join(sorted(missing_tags))}"
            raise ValueError(msg)
        try:
            BusinessUnit(tags["OU"])
        except ValueError as exc:
            msg = f"'{tags['OU']}' is not a known business unit for the OU tag"
            raise ValueError(msg) from exc
        return tags

    @field_validator("region")
    @classmethod
    def check_region(cls, region: str) -> str:
        if region not in transfer_regions():
            msg = f"AWS Transfer Family is not offered in region '{region}'"
            raise ValueError(msg)
        return region

    def merged_tags(self, *new_tags: dict[str, str]) -> dict[str, str]:
        """Build the tags for a child resource of a component.

        :param *new_tags: Resource specific tags, applied in order on top of the
                            configuration object's tags.
        :type new_tags: dict[str, str]

        :returns: A new dictionary, the configuration object's tags are unchanged.

        :rtype: dict[str, str]
        """
        tag_dict = dict(self.tags)
        for tags in new_tags:
            tag_dict.update(tags)
        return tag_dict
