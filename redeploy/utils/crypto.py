"""Random identifiers for deployment runs."""

import secrets
import string


def random_id(length: int = 16) -> str:
    """Generate a cryptographically secure random ID."""
    if length <= 0:
        raise ValueError("Length must be positive")
    alphabet = string.ascii_lowercase + string.digits
    return "".join((secrets.choice(alphabet) for _ in range(length)))
