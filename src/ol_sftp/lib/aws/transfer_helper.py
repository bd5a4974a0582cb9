"""Helper functions for working with AWS Transfer Family resources."""

from functools import lru_cache

import boto3


@lru_cache
def transfer_regions() -> list[str]:
    """Generate the list of regions where AWS Transfer Family is offered.

    The region list comes from the endpoint data bundled with botocore, so no
    credentials or network access are needed.

    :returns: List of AWS regions

    :rtype: list[str]
    """
    return boto3.session.Session().get_available_regions("transfer")
