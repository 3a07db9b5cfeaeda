import secrets
import string

from . import constants as CONSTANTS

_RAND_ALPHABET = string.ascii_lowercase + string.digits


def rand_string(length: int) -> str:
    """Random lowercase alphanumeric string, safe for GCE resource names."""
    return "".join(secrets.choice(_RAND_ALPHABET) for _ in range(length))


def random_name(prefix: str = CONSTANTS.TEST_NAME_PREFIX) -> str:
    """
    Build a unique test resource name.

    Example:
        >>> random_name()
        'igm-test-k3d9x0qa1b'
    """
    return f"{prefix}-{rand_string(CONSTANTS.RAND_STRING_LENGTH)}"


def resource_name_from_self_link(link: str) -> str:
    """
    Extract the resource name from a self link.

    Plain names (no '/') are returned unchanged, so the same helper works
    for Terraform ids in both the short and the path form.
    """
    if not link:
        return ""
    return link.rstrip("/").rsplit("/", 1)[-1]
