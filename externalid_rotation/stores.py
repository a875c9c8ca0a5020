# -*- coding: utf-8 -*-
"""
The versioned secret store contract the rotator drives.

A secret holds write-once versions. Stage labels are attached to at most one version
each, a version may carry several labels at once.

CURRENT  - the value consumers read. Once a secret is populated exactly one version
           carries it at all times.
PENDING  - a candidate created by a rotation attempt, bound to that attempt's request
           token. Never served to consumers.
PREVIOUS - the version CURRENT was moved off by the last promotion.

Concrete stores translate these labels to whatever their service calls them (aliases
on Google Cloud Secret Manager, version stages on AWS Secrets Manager).
"""

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .exceptions import NoCurrentVersion, PendingVersionNotFound, VersionAlreadyExists

CURRENT = "CURRENT"
PENDING = "PENDING"
PREVIOUS = "PREVIOUS"


@dataclass(frozen=True)
class SecretVersion:
    version_id: str
    value: str
    request_token: str = None
    stages: tuple = field(default_factory=tuple)


class SecretStore(ABC):
    """Abstract Base Class for the client side of a versioned secret store.

    Every operation is keyed by secret id and, for rotation operations, by the
    request token of the rotation attempt. Implementations must make
    ``put_pending`` idempotent per token and ``promote_pending`` atomic for
    readers of CURRENT.
    """

    @abstractmethod
    def get_pending(self, secret_id, request_token):
        """Fetches the PENDING version created with ``request_token``.

        Returns:
            SecretVersion: The version, or None if no PENDING version carries
            that token.
        """
        return None

    @abstractmethod
    def put_pending(self, secret_id, request_token, value):
        """Stores ``value`` as a new version staged PENDING for ``request_token``.

        If a PENDING version already exists for the token this is a no-op that
        returns its id; the stored value is left untouched.

        Returns:
            str: The version id of the pending version.

        Raises:
            VersionAlreadyExists: The token already created a version that is
                no longer PENDING.
        """
        return None

    @abstractmethod
    def promote_pending(self, secret_id, request_token, previous_version_id=None):
        """Atomically moves CURRENT onto the version created by ``request_token``.

        The displaced version becomes PREVIOUS. PENDING is removed from the
        promoted version, and from ``previous_version_id`` if it still carries
        it. Calling again once the version is CURRENT changes nothing.

        Raises:
            PendingVersionNotFound: The token has no PENDING or CURRENT version.
        """
        return None

    @abstractmethod
    def get_current(self, secret_id):
        """Fetches the version staged CURRENT.

        Raises:
            NoCurrentVersion: The secret has never been populated.
        """
        return None


class InMemorySecretStore(SecretStore):
    """A process local store honouring the full store contract.

    All bookkeeping happens under one lock so stage moves are atomic for
    concurrent readers.
    """

    def __init__(self):
        self.lock = threading.Lock()
        # secret id -> version id -> SecretVersion (stages left empty)
        self._versions = {}
        # secret id -> stage label -> version id
        self._labels = {}

    def seed(self, secret_id, value, version_id=None, request_token=None):
        """Populates a secret with an initial CURRENT version."""
        version_id = version_id or str(uuid.uuid4())
        with self.lock:
            versions = self._versions.setdefault(secret_id, {})
            labels = self._labels.setdefault(secret_id, {})
            versions[version_id] = SecretVersion(version_id=version_id,
                                                 value=value,
                                                 request_token=request_token)
            if CURRENT in labels:
                labels[PREVIOUS] = labels[CURRENT]
            labels[CURRENT] = version_id
        return version_id

    def stages(self, secret_id):
        """Returns a mapping of version id to the sorted labels it carries."""
        with self.lock:
            result = {version_id: () for version_id in self._versions.get(secret_id, {})}
            for label, version_id in self._labels.get(secret_id, {}).items():
                result[version_id] = tuple(sorted(result[version_id] + (label,)))
            return result

    def versions(self, secret_id):
        with self.lock:
            return list(self._versions.get(secret_id, {}).values())

    def _snapshot(self, secret_id, version):
        labels = self._labels.get(secret_id, {})
        stages = tuple(sorted(label for label, version_id in labels.items()
                              if version_id == version.version_id))
        return SecretVersion(version_id=version.version_id,
                             value=version.value,
                             request_token=version.request_token,
                             stages=stages)

    def _version_for_token(self, secret_id, request_token):
        for version in self._versions.get(secret_id, {}).values():
            if version.request_token == request_token:
                return version
        return None

    def get_pending(self, secret_id, request_token):
        with self.lock:
            version = self._version_for_token(secret_id, request_token)
            if version is None or self._labels.get(secret_id, {}).get(PENDING) \
                    != version.version_id:
                return None
            return self._snapshot(secret_id, version)

    def put_pending(self, secret_id, request_token, value):
        with self.lock:
            labels = self._labels.setdefault(secret_id, {})
            existing = self._version_for_token(secret_id, request_token)
            if existing is not None:
                if labels.get(PENDING) == existing.version_id:
                    return existing.version_id
                raise VersionAlreadyExists(secret_id, request_token)

            version_id = str(uuid.uuid4())
            self._versions.setdefault(secret_id, {})[version_id] = SecretVersion(
                version_id=version_id,
                value=value,
                request_token=request_token)
            # displaces any stale candidate from an abandoned attempt
            labels[PENDING] = version_id
            return version_id

    def promote_pending(self, secret_id, request_token, previous_version_id=None):
        with self.lock:
            labels = self._labels.setdefault(secret_id, {})
            version = self._version_for_token(secret_id, request_token)
            if version is None:
                raise PendingVersionNotFound(secret_id, request_token)

            target = version.version_id
            if labels.get(CURRENT) == target:
                if labels.get(PENDING) == target:
                    del labels[PENDING]
                return
            if labels.get(PENDING) != target:
                raise PendingVersionNotFound(secret_id, request_token)

            if CURRENT in labels:
                labels[PREVIOUS] = labels[CURRENT]
            labels[CURRENT] = target
            # PENDING names a single version, so previous_version_id cannot still hold it
            del labels[PENDING]

    def get_current(self, secret_id):
        with self.lock:
            version_id = self._labels.get(secret_id, {}).get(CURRENT)
            if version_id is None:
                raise NoCurrentVersion(secret_id)
            return self._snapshot(secret_id, self._versions[secret_id][version_id])
