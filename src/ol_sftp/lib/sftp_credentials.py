"""Reshape SFTP user definitions into the maps used to declare Transfer resources.

Users are supplied as an ordered list, each with an ordered list of SSH public
keys. Pulumi resources need stable, unique logical names, so the nested list is
flattened into one record per key and then projected into two dictionaries:

* users keyed by ``username``
* key records keyed by ``"{username}-{index}"``

The key index is the position of the *first* occurrence of the key string in
the owning user's list. Two identical keys for the same user therefore share an
index and collide in the composite key map. Collisions are either reported as a
warning while keeping the last entry, or raised, depending on the
``DuplicatePolicy`` in effect.
"""

from collections import Counter
from collections.abc import Iterable
from enum import Enum, unique

import pulumi
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

COMPOSITE_KEY_SEPARATOR = "-"


@unique
class DuplicatePolicy(str, Enum):
    """How to treat colliding usernames or key indices."""

    last_write_wins = "last_write_wins"
    fail = "fail"


class SFTPCredentialError(Exception):
    """Base class for errors raised while reshaping SFTP credentials."""


class DuplicateUsernameError(SFTPCredentialError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"SFTP username '{username}' is defined more than once")


class DuplicateKeyError(SFTPCredentialError):
    def __init__(self, username: str, index: int):
        self.username = username
        self.index = index
        super().__init__(
            f"SFTP user '{username}' lists the same public key more than once "
            f"(key index {index})"
        )


class SFTPUserConfig(BaseModel):
    """Configuration for SFTP users."""

    username: str
    role_arn: str | None = None
    public_keys: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "public_keys", "ssh_public_keys", "sshPublicKeys"
        ),
    )
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)


class SFTPUserKey(BaseModel):
    """A single public key belonging to an SFTP user."""

    username: str
    public_key: str
    index: int
    model_config = ConfigDict(frozen=True)

    @property
    def resource_key(self) -> str:
        return composite_key(self.username, self.index)


class SFTPCredentialMaps(BaseModel):
    """The two projections consumed by the SFTP server component."""

    users_by_name: dict[str, SFTPUserConfig]
    keys_by_composite_key: dict[str, SFTPUserKey]


_users_adapter = TypeAdapter(list[SFTPUserConfig])


def load_sftp_users(raw_users: list[dict]) -> list[SFTPUserConfig]:
    """Parse structured configuration data into SFTP user records.

    :param raw_users: List of mappings with a ``username`` and a list of SSH
        public keys under ``public_keys``, ``ssh_public_keys`` or
        ``sshPublicKeys``.
    :type raw_users: list[dict]

    :raises pydantic.ValidationError: If a record is missing its username or its
        keys are not a list of strings.

    :returns: The parsed user records, in input order.

    :rtype: list[SFTPUserConfig]
    """
    return _users_adapter.validate_python(raw_users)


def composite_key(username: str, index: int) -> str:
    return f"{username}{COMPOSITE_KEY_SEPARATOR}{index}"


def find_duplicate_usernames(users: Iterable[SFTPUserConfig]) -> list[str]:
    counts = Counter(user.username for user in users)
    return [username for username, count in counts.items() if count > 1]


def find_duplicate_keys(users: Iterable[SFTPUserConfig]) -> dict[str, list[str]]:
    """Return the public keys that appear more than once in a user's own list."""
    duplicates: dict[str, list[str]] = {}
    for user in users:
        repeated = [
            key for key, count in Counter(user.public_keys).items() if count > 1
        ]
        if repeated:
            duplicates.setdefault(user.username, []).extend(repeated)
    return duplicates


def project_users_by_name(
    users: Iterable[SFTPUserConfig],
    on_duplicate: DuplicatePolicy = DuplicatePolicy.last_write_wins,
) -> dict[str, SFTPUserConfig]:
    """Index the user records by username.

    With ``DuplicatePolicy.last_write_wins`` a repeated username replaces the
    earlier record and a warning is logged. With ``DuplicatePolicy.fail`` a
    ``DuplicateUsernameError`` is raised instead.
    """
    users_by_name: dict[str, SFTPUserConfig] = {}
    for user in users:
        if user.username in users_by_name:
            if on_duplicate == DuplicatePolicy.fail:
                raise DuplicateUsernameError(user.username)
            pulumi.log.warn(
                f"SFTP user '{user.username}' is defined more than once, the last "
                "definition configures the account but keys from earlier "
                "definitions may still be provisioned"
            )
        users_by_name[user.username] = user
    return users_by_name


def flatten_keys(users: Iterable[SFTPUserConfig]) -> list[SFTPUserKey]:
    """Flatten every user's public keys into a single ordered list.

    All keys of the first user come before the keys of the second user, and so
    on. Each record's ``index`` is the first position of that key string in the
    owning user's list, so repeated keys share the same index.
    """
    return [
        SFTPUserKey(
            username=user.username,
            public_key=public_key,
            index=user.public_keys.index(public_key),
        )
        for user in users
        for public_key in user.public_keys
    ]


def project_keys_by_composite_key(
    flat_keys: Iterable[SFTPUserKey],
    on_duplicate: DuplicatePolicy = DuplicatePolicy.last_write_wins,
) -> dict[str, SFTPUserKey]:
    """Index the flattened key records by ``"{username}-{index}"``.

    A colliding composite key either replaces the earlier record with a
    warning, or raises an error when the policy is ``DuplicatePolicy.fail``.
    Records holding the same key string collide because they share an index,
    records holding different keys collide because their username repeats.
    """
    keys_by_composite_key: dict[str, SFTPUserKey] = {}
    for user_key in flat_keys:
        resource_key = user_key.resource_key
        replaced_key = keys_by_composite_key.get(resource_key)
        if replaced_key is not None:
            same_key = replaced_key.public_key == user_key.public_key
            if on_duplicate == DuplicatePolicy.fail:
                if same_key:
                    raise DuplicateKeyError(user_key.username, user_key.index)
                raise DuplicateUsernameError(user_key.username)
            if same_key:
                pulumi.log.warn(
                    f"SFTP user '{user_key.username}' lists the same public key "
                    "more than once, only one copy will be provisioned as "
                    f"'{resource_key}'"
                )
            else:
                pulumi.log.warn(
                    f"SFTP user '{user_key.username}' is defined more than once, "
                    f"a key from an earlier definition at '{resource_key}' is "
                    "replaced by a different key"
                )
        keys_by_composite_key[resource_key] = user_key
    return keys_by_composite_key


def build_credential_maps(
    users: Iterable[SFTPUserConfig],
    on_duplicate: DuplicatePolicy = DuplicatePolicy.last_write_wins,
) -> SFTPCredentialMaps:
    """Flatten the user definitions and project both resource maps.

    :param users: SFTP user records in the order they were configured.
    :type users: Iterable[SFTPUserConfig]

    :param on_duplicate: Policy applied to colliding usernames and key indices.
    :type on_duplicate: DuplicatePolicy

    :raises DuplicateUsernameError: If a username repeats and the policy is
        ``DuplicatePolicy.fail``.
    :raises DuplicateKeyError: If a user repeats a key and the policy is
        ``DuplicatePolicy.fail``.

    :rtype: SFTPCredentialMaps
    """
    users = list(users)
    users_by_name = project_users_by_name(users, on_duplicate)
    flat_keys = flatten_keys(users)
    keys_by_composite_key = project_keys_by_composite_key(flat_keys, on_duplicate)
    pulumi.log.debug(
        f"Prepared {len(users_by_name)} SFTP users and "
        f"{len(keys_by_composite_key)} SSH keys from {len(flat_keys)} configured keys"
    )
    return SFTPCredentialMaps(
        users_by_name=users_by_name,
        keys_by_composite_key=keys_by_composite_key,
    )
