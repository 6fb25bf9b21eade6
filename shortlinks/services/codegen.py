"""Short code generation."""

import secrets
from typing import Optional

from shortlinks.core.config import settings


class CodeGenerator:
    """
    Produces random lowercase hex short codes.

    The randomness only keeps collisions rare; it carries no security
    meaning, and uniqueness is the registry's job.
    """

    def __init__(self, num_bytes: Optional[int] = None):
        self.num_bytes = num_bytes if num_bytes is not None else settings.SHORT_CODE_BYTES

    def generate(self) -> str:
        """Return a code of ``2 * num_bytes`` hex characters (8 by default)."""
        return secrets.token_hex(self.num_bytes)
