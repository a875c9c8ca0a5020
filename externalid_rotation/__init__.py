# -*- coding: utf-8 -*-
"""externalid_rotation

Rotation of external ids, the shared secrets gating cross-account role assumption, through
a versioned secret store. A new value is only served once it has been stored, validated and
promoted, and every step is safe to retry

"""

from externalid_rotation.exceptions import SecretCacheError, \
    NoCurrentVersion, \
    SecretRotatorError, \
    EntropySourceError, \
    ValidationReason, \
    ValidationError, \
    StoreUnavailable, \
    PendingVersionNotFound, \
    VersionAlreadyExists, \
    InvalidPhase, \
    CorruptSecretVersion
from externalid_rotation.generator import generate_external_id
from externalid_rotation.validator import validate_external_id, \
    parse_external_id, \
    serialize_external_id
from externalid_rotation.stores import SecretStore, \
    SecretVersion, \
    InMemorySecretStore, \
    CURRENT, \
    PENDING, \
    PREVIOUS
from externalid_rotation.gcp_store import GCPSecretStore
from externalid_rotation.aws_store import AWSSecretStore
from externalid_rotation.managers import RotationStep, \
    RotationRequest, \
    SecretRotatorMechanic, \
    ExternalIdMechanic, \
    SecretRotator
from externalid_rotation.cache_secret import CachedSecret
from externalid_rotation.decorators import InjectExternalId
from externalid_rotation.config import RotationConfig
from ._version import __version__

__all__ = ["__version__",
           "SecretCacheError",
           "NoCurrentVersion",
           "SecretRotatorError",
           "EntropySourceError",
           "ValidationReason",
           "ValidationError",
           "StoreUnavailable",
           "PendingVersionNotFound",
           "VersionAlreadyExists",
           "InvalidPhase",
           "CorruptSecretVersion",
           "generate_external_id",
           "validate_external_id",
           "parse_external_id",
           "serialize_external_id",
           "SecretStore",
           "SecretVersion",
           "InMemorySecretStore",
           "CURRENT",
           "PENDING",
           "PREVIOUS",
           "GCPSecretStore",
           "AWSSecretStore",
           "RotationStep",
           "RotationRequest",
           "SecretRotatorMechanic",
           "ExternalIdMechanic",
           "SecretRotator",
           "CachedSecret",
           "InjectExternalId",
           "RotationConfig"]
