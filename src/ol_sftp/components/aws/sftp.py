"""Module for creating and managing AWS Transfer Family SFTP servers backed by S3.

Users and their SSH public keys are declared from the maps produced by
``ol_sftp.lib.sftp_credentials`` so that every account is addressed by its
username and every key by ``"{username}-{index}"``. Reordering the configured
users leaves existing resources untouched, while removing or reordering a key
within a user's list renames that key and every later key of the same user.
"""

import json
from typing import Literal

import pulumi
from pulumi import ComponentResource, ResourceOptions
from pulumi_aws import iam, s3, transfer
from pydantic import Field, model_validator

from ol_sftp.lib.ol_types import AWSBase
from ol_sftp.lib.sftp_credentials import (
    DuplicateKeyError,
    DuplicatePolicy,
    DuplicateUsernameError,
    SFTPUserConfig,
    build_credential_maps,
    find_duplicate_keys,
    find_duplicate_usernames,
)


class SFTPServerConfig(AWSBase):
    """Configuration object for customizing an SFTP server backed by S3."""

    server_name: str
    bucket_name: str
    domain: Literal["S3", "EFS"] = "S3"
    endpoint_type: Literal["PUBLIC", "VPC", "VPC_ENDPOINT"] = "PUBLIC"
    identity_provider_type: Literal[
        "SERVICE_MANAGED", "AWS_LAMBDA", "API_GATEWAY", "AWS_DIRECTORY_SERVICE"
    ] = "SERVICE_MANAGED"
    users: list[SFTPUserConfig] = Field(default_factory=list)
    security_policy_name: str = "TransferSecurityPolicy-2024-01"
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.fail

    @model_validator(mode="after")
    def check_duplicate_credentials(self) -> "SFTPServerConfig":
        if self.duplicate_policy != DuplicatePolicy.fail:
            return self
        for username in find_duplicate_usernames(self.users):
            raise DuplicateUsernameError(username)
        duplicate_keys = find_duplicate_keys(self.users)
        for user in self.users:
            if user.username in duplicate_keys:
                repeated_key = duplicate_keys[user.username][0]
                raise DuplicateKeyError(
                    user.username, user.public_keys.index(repeated_key)
                )
        return self


def _user_s3_policy(bucket_name: str, username: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "AllowListingOfUserFolder",
                    "Action": ["s3:ListBucket"],
                    "Effect": "Allow",
                    "Resource": [f"arn:aws:s3:::{bucket_name}"],
                },
                {
                    "Sid": "HomeDirObjectAccess",
                    "Effect": "Allow",
                    "Action": [
                        "s3:PutObject",
                        "s3:GetObject",
                        "s3:GetObjectTagging",
                        "s3:DeleteObject",
                        "s3:DeleteObjectVersion",
                        "s3:GetObjectVersion",
                        "s3:GetObjectVersionTagging",
                        "s3:GetObjectACL",
                        "s3:PutObjectACL",
                    ],
                    "Resource": f"arn:aws:s3:::{bucket_name}/{username}/*",
                },
            ],
        }
    )


TRANSFER_ASSUME_ROLE_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "transfer.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
)


class SFTPServer(ComponentResource):
    """A Pulumi component for constructing AWS Transfer Family SFTP server
    backed by S3.
    """

    def __init__(
        self, sftp_config: SFTPServerConfig, opts: ResourceOptions | None = None
    ):
        """Create an SFTP server with S3 backend, IAM roles, users and SSH keys.

        :param sftp_config: Configuration object for customizing the component
        :type sftp_config: SFTPServerConfig

        :param opts: Pulumi resource options
        :type opts: ResourceOptions

        :rtype: SFTPServer
        """
        super().__init__(
            "ol:infrastructure:aws:SFTPServer", sftp_config.server_name, None, opts
        )

        generic_resource_opts = ResourceOptions(parent=self).merge(opts)
        server_name = sftp_config.server_name

        self.bucket = s3.BucketV2(
            f"{server_name}-sftp-bucket",
            bucket=sftp_config.bucket_name,
            tags=sftp_config.tags,
            opts=generic_resource_opts,
        )

        s3.BucketVersioningV2(
            f"{server_name}-sftp-bucket-versioning",
            bucket=self.bucket.id,
            versioning_configuration=s3.BucketVersioningV2VersioningConfigurationArgs(
                status="Enabled"
            ),
            opts=generic_resource_opts,
        )

        s3.BucketPublicAccessBlock(
            f"{server_name}-sftp-bucket-public-access-block",
            bucket=self.bucket.id,
            block_public_acls=True,
            block_public_policy=True,
            ignore_public_acls=True,
            restrict_public_buckets=True,
            opts=generic_resource_opts,
        )

        self.transfer_server = transfer.Server(
            f"{server_name}",
            domain=sftp_config.domain,
            endpoint_type=sftp_config.endpoint_type,
            identity_provider_type=sftp_config.identity_provider_type,
            protocols=["SFTP"],
            security_policy_name=sftp_config.security_policy_name,
            tags=sftp_config.merged_tags({"Name": f"{server_name}"}),
            opts=generic_resource_opts,
        )

        credential_maps = build_credential_maps(
            sftp_config.users, sftp_config.duplicate_policy
        )

        self.users: dict[str, transfer.User] = {}
        for username, user_config in credential_maps.users_by_name.items():
            user_role_arn = user_config.role_arn or self._create_user_role(
                sftp_config, username, generic_resource_opts
            )
            self.users[username] = transfer.User(
                f"{server_name}-sftp-user-{username}",
                server_id=self.transfer_server.id,
                user_name=username,
                home_directory_type="LOGICAL",
                home_directory_mappings=[
                    transfer.UserHomeDirectoryMappingArgs(
                        entry="/",
                        target=f"/{sftp_config.bucket_name}/{username}",
                    )
                ],
                role=user_role_arn,
                tags=sftp_config.merged_tags(
                    {
                        "Name": f"{server_name}-sftp-user-{username}",
                        "SFTPUser": username,
                    }
                ),
                opts=generic_resource_opts,
            )

        # Each key is created after its owning user.
        self.ssh_keys: dict[str, transfer.SshKey] = {}
        for resource_key, user_key in credential_maps.keys_by_composite_key.items():
            sftp_user = self.users[user_key.username]
            self.ssh_keys[resource_key] = transfer.SshKey(
                f"{server_name}-sftp-user-key-{resource_key}",
                server_id=self.transfer_server.id,
                user_name=sftp_user.user_name,
                body=user_key.public_key,
                opts=ResourceOptions(depends_on=[sftp_user]).merge(
                    generic_resource_opts
                ),
            )
        pulumi.log.debug(
            f"SFTP server {server_name} declared {len(self.users)} users and "
            f"{len(self.ssh_keys)} SSH keys"
        )

        self.register_outputs(
            {
                "server_id": self.transfer_server.id,
                "bucket_name": self.bucket.bucket,
                "user_names": list(self.users),
                "ssh_key_ids": {
                    resource_key: ssh_key.id
                    for resource_key, ssh_key in self.ssh_keys.items()
                },
            }
        )

    def _create_user_role(
        self,
        sftp_config: SFTPServerConfig,
        username: str,
        resource_opts: ResourceOptions,
    ) -> pulumi.Output[str]:
        """Create an IAM role scoped to the user's home directory in the bucket."""
        server_name = sftp_config.server_name
        user_policy = iam.Policy(
            f"{server_name}-sftp-{username}-iam-policy",
            policy=_user_s3_policy(sftp_config.bucket_name, username),
            tags=sftp_config.tags,
            opts=resource_opts,
        )

        user_role = iam.Role(
            f"{server_name}-sftp-{username}-role",
            assume_role_policy=TRANSFER_ASSUME_ROLE_POLICY,
            tags=sftp_config.merged_tags(
                {
                    "Name": f"{server_name}-sftp-user-{username}-role",
                    "SFTPUser": username,
                }
            ),
            opts=resource_opts,
        )

        iam.RolePolicyAttachment(
            f"{server_name}-sftp-user-{username}-policy-attachment",
            role=user_role.name,
            policy_arn=user_policy.arn,
            opts=resource_opts,
        )
        return user_role.arn
