from dataclasses import dataclass
from typing import Any, TypeVar

from pulumi import Config, get_stack
from pydantic import TypeAdapter

T = TypeVar("T")


@dataclass
class StackInfo:
    """Container class for encapsulating standard information about a stack."""

    name: str
    namespace: str
    env_suffix: str
    env_prefix: str
    full_name: str


def parse_stack() -> StackInfo:
    """Standardized method for extracting stack information.

    :returns: Parsed stack information for use in business logic.

    :rtype: StackInfo
    """
    stack = get_stack()
    return stack_info_from_name(stack)


def stack_info_from_name(stack: str) -> StackInfo:
    """Split a fully qualified stack name such as ``infrastructure.aws.sftp.QA``."""
    stack_name = stack.split(".")[-1]
    namespace = stack.rsplit(".", 1)[0]
    return StackInfo(
        name=stack_name,
        namespace=namespace,
        env_suffix=stack_name.lower(),
        env_prefix=namespace.rsplit(".", 1)[-1],
        full_name=stack,
    )


def read_config_object(config: Config, key: str, model: type[T]) -> T | None:
    """Read a structured stack config value and validate it against a type.

    :param config: The Pulumi config namespace to read from.
    :type config: Config

    :param key: Name of the config value.
    :type key: str

    :param model: Any type pydantic can validate, e.g. ``list[SomeModel]``.

    :raises pydantic.ValidationError: If the value does not match ``model``.

    :returns: The validated value, or None when the key is not set.
    """
    raw_value: Any = config.get_object(key)
    if raw_value is None:
        return None
    return TypeAdapter(model).validate_python(raw_value)
