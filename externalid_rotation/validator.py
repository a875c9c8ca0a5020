# -*- coding: utf-8 -*-
"""Validation of external ids and the json document they are stored in.

Stored versions hold a flat json document
{
    "externalId": "string"   # letters and digits only, 8 to 1224 characters
}
"""

import json
import re

from .exceptions import ValidationError, ValidationReason

EXTERNAL_ID_FIELD = "externalId"
MIN_EXTERNAL_ID_LENGTH = 8
MAX_EXTERNAL_ID_LENGTH = 1224

_ALPHANUMERIC = re.compile(r"[A-Za-z0-9]+")


def validate_external_id(value, secret_id=None):
    """Checks an external id is safe to promote.

    Args:
        value: The candidate external id.
        secret_id (str, optional): Included in the error for context.

    Returns:
        str: The value unchanged.

    Raises:
        ValidationError: With the ``reason`` of the first check that failed.
    """
    if not value:
        raise ValidationError(ValidationReason.MISSING, "external id not found", secret_id)

    if not isinstance(value, str):
        raise ValidationError(ValidationReason.WRONG_TYPE,
                              f"external id must be a string not {type(value).__name__}",
                              secret_id)

    if len(value) < MIN_EXTERNAL_ID_LENGTH:
        raise ValidationError(ValidationReason.TOO_SHORT,
                              f"must be at least {MIN_EXTERNAL_ID_LENGTH} characters",
                              secret_id)

    if len(value) > MAX_EXTERNAL_ID_LENGTH:
        raise ValidationError(ValidationReason.TOO_LONG,
                              f"must be at most {MAX_EXTERNAL_ID_LENGTH} characters",
                              secret_id)

    if not _ALPHANUMERIC.fullmatch(value):
        raise ValidationError(ValidationReason.INVALID_CHARACTERS,
                              "must contain only ASCII letters and digits",
                              secret_id)

    return value


def serialize_external_id(value):
    return json.dumps({EXTERNAL_ID_FIELD: value})


def parse_external_id(payload, secret_id=None):
    """Extracts the external id from a stored payload without validating it.

    A payload that is not a json object is rejected as ``WrongType``; a missing
    field is returned as ``None`` so the validator reports it as ``Missing``.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    try:
        document = json.loads(payload)
    except (TypeError, ValueError):
        raise ValidationError(ValidationReason.WRONG_TYPE,
                              "stored secret is not valid JSON",
                              secret_id) from None

    if not isinstance(document, dict):
        raise ValidationError(ValidationReason.WRONG_TYPE,
                              "stored secret is not a JSON object",
                              secret_id)

    return document.get(EXTERNAL_ID_FIELD)
