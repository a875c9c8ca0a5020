# -*- coding: utf-8 -*-
"""Generation of candidate external ids."""

import secrets
import string

from .exceptions import EntropySourceError

EXTERNAL_ID_ALPHABET = string.ascii_letters + string.digits
DEFAULT_EXTERNAL_ID_LENGTH = 32


def generate_external_id(length=DEFAULT_EXTERNAL_ID_LENGTH):
    """Generates a cryptographically secure random external id.

    Each character is drawn uniformly from ASCII letters and digits using the
    operating system's secure random source.

    Args:
        length (int, optional): Number of characters. Defaults to 32.

    Returns:
        str: The new external id.

    Raises:
        EntropySourceError: If the secure random source cannot be read.
    """
    try:
        return "".join(secrets.choice(EXTERNAL_ID_ALPHABET) for _ in range(length))
    except (NotImplementedError, OSError) as e:
        raise EntropySourceError(e) from e
