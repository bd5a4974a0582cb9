"""Shared pytest fixtures for the SFTP infrastructure tests."""

import os

import pytest

# boto3 resolves regions from bundled endpoint data, but still wants a default
# region when a session is created.
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_tags():
    """Return standard tags for test resources.

    Returns:
        dict: Dictionary of required resource tags.
    """
    return {
        "OU": "operations",
        "Environment": "test",
        "Application": "sftp",
    }


@pytest.fixture
def sample_public_keys():
    """Public keys in authorized_keys format.

    Returns:
        list[str]: Distinct SSH public keys.
    """
    return [
        "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIBen0 ben@example.com",
        "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIBen1 ben@laptop",
        "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQBob bob@example.com",
    ]
