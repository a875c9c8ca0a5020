# -*- coding: utf-8 -*-
"""Configuration of the rotation entry points, read from the environment.

EXTERNAL_ID_STORE       "aws" (default) or "gcp"
EXTERNAL_ID_LENGTH      length of generated external ids, default 32
EXTERNAL_ID_CACHE_TTL   seconds between refreshes of cached external ids, default 60
AWS_REGION              region for AWS Secrets Manager, falls back to AWS_DEFAULT_REGION
"""

import os
from dataclasses import dataclass

from .generator import DEFAULT_EXTERNAL_ID_LENGTH
from .validator import MAX_EXTERNAL_ID_LENGTH, MIN_EXTERNAL_ID_LENGTH

STORE_BACKENDS = ("aws", "gcp")
MIN_CACHE_TTL = 30.0


@dataclass(frozen=True)
class RotationConfig:
    store: str = "aws"
    external_id_length: int = DEFAULT_EXTERNAL_ID_LENGTH
    cache_ttl: float = 60.0
    region_name: str = None

    def __post_init__(self):
        if self.store not in STORE_BACKENDS:
            raise ValueError(f"EXTERNAL_ID_STORE must be one of {', '.join(STORE_BACKENDS)} "
                             f"not {self.store!r}")
        if not MIN_EXTERNAL_ID_LENGTH <= self.external_id_length <= MAX_EXTERNAL_ID_LENGTH:
            raise ValueError(f"EXTERNAL_ID_LENGTH must be between {MIN_EXTERNAL_ID_LENGTH} "
                             f"and {MAX_EXTERNAL_ID_LENGTH}")
        if self.cache_ttl < MIN_CACHE_TTL:
            raise ValueError(f"EXTERNAL_ID_CACHE_TTL must be at least {MIN_CACHE_TTL} seconds")

    @classmethod
    def from_environ(cls, environ=None):
        if environ is None:
            environ = os.environ
        try:
            length = int(environ.get("EXTERNAL_ID_LENGTH", DEFAULT_EXTERNAL_ID_LENGTH))
            cache_ttl = float(environ.get("EXTERNAL_ID_CACHE_TTL", 60.0))
        except ValueError as e:
            raise ValueError(f"Invalid rotation configuration {e}") from None
        return cls(store=environ.get("EXTERNAL_ID_STORE", "aws").lower(),
                   external_id_length=length,
                   cache_ttl=cache_ttl,
                   region_name=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION"))
