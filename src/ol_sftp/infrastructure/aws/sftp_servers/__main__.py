"""
Pulumi project for MIT OL SFTP Sites
"""

from pulumi import Config, export

from ol_sftp.components.aws.sftp import (
    SFTPServer,
    SFTPServerConfig,
)
from ol_sftp.lib.ol_types import AWSBase, BusinessUnit, Services
from ol_sftp.lib.pulumi_helper import parse_stack, read_config_object
from ol_sftp.lib.sftp_credentials import (
    DuplicatePolicy,
    SFTPUserConfig,
)

stack_info = parse_stack()
aws_config = AWSBase(
    tags={
        "OU": BusinessUnit.mit_learn,
        "Environment": stack_info.env_suffix,
        "Application": Services.sftp,
    }
)

sftp_config = Config("aws_sftp")
sftp_user_configs = read_config_object(sftp_config, "users", list[SFTPUserConfig])
if sftp_user_configs is None:
    sftp_user_configs = [
        SFTPUserConfig(
            username="mitpress",
            public_keys=[sftp_config.require("mitpress_sftp_public_key")],
        )
    ]

sftp_server_config = SFTPServerConfig(
    server_name=f"sftp-{stack_info.env_suffix}",
    bucket_name=f"ol-data-lake-sftp-{stack_info.env_suffix}",
    users=sftp_user_configs,
    duplicate_policy=DuplicatePolicy(
        sftp_config.get("duplicate_policy") or DuplicatePolicy.fail
    ),
    tags=aws_config.tags,
)

sftp_server = SFTPServer(
    sftp_config=sftp_server_config,
)

export("sftp_server_id", sftp_server.transfer_server.id)
export("sftp_bucket", sftp_server.bucket.bucket)
export("sftp_users", list(sftp_server.users))
export(
    "sftp_ssh_keys",
    {key: ssh_key.id for key, ssh_key in sftp_server.ssh_keys.items()},
)
