import uuid
from hashlib import sha1

_PART_SEPARATOR = b"\x00"


def content_name(prefix: str, *parts: str | bytes) -> str:
    """Derive a logical id from the fields that define a resource's identity.

    The same prefix and parts always produce the same name, so assembling identical
    definitions twice yields identical logical ids.

    Args:
        prefix: Hint for the resource kind (e.g. "Lambda", "IAMRole")
        parts: Identity-defining values, hashed in order

    Returns:
        Prefix followed by the hex SHA-1 digest of the parts
    """
    digest = sha1()  # noqa: S324
    for index, part in enumerate(parts):
        if index:
            digest.update(_PART_SEPARATOR)
        digest.update(part if isinstance(part, bytes) else part.encode())
    return f"{prefix}{digest.hexdigest()}"


def salted_name(prefix: str) -> str:
    """Logical id for resources whose identity need not survive re-assembly."""
    return content_name(prefix, prefix, uuid.uuid4().hex)
