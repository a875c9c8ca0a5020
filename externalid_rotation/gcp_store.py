# -*- coding: utf-8 -*-
"""
Google Cloud Secret Manager implementation of the secret store contract.

Secret Manager has no stage labels on versions so they are modelled with secret
version aliases

CURRENT  -> alias "current"
PENDING  -> alias "pending"
PREVIOUS -> alias "previous"

Consumers should access "projects/<p>/secrets/<s>/versions/current", not "latest",
as "latest" would serve a candidate that has not been validated yet.

Versions carry no metadata of their own, so the request token that created a version
is recorded on the secret as an annotation "rotation-token-<version number>". Annotations
are only kept for versions that still hold an alias.

Aliases and annotations are always written in one UpdateSecret call guarded by the
secret etag. This makes promotion atomic and makes a concurrent writer fail with
Aborted (surfaced as StoreUnavailable) rather than overwrite.

A payload that fails its CRC32C check on read raises CorruptSecretVersion, which is not
retryable: the stored bytes will not change on a second read.

A crash between AddSecretVersion and UpdateSecret in put_pending leaves a version with
no alias. It is never served and a retry adds a fresh version.
"""

import logging
import threading
from contextlib import contextmanager

import google.auth
import google_crc32c
from google.api_core import exceptions
from google.cloud import secretmanager

from .exceptions import CorruptSecretVersion, NoCurrentVersion, PendingVersionNotFound, \
    StoreUnavailable, VersionAlreadyExists
from .stores import CURRENT, PENDING, PREVIOUS, SecretStore, SecretVersion

STAGE_ALIASES = {CURRENT: "current",
                 PENDING: "pending",
                 PREVIOUS: "previous"}

TOKEN_ANNOTATION_PREFIX = "rotation-token-"

# Errors where retrying the same step with the same token can succeed
RETRYABLE_EXCEPTIONS = (exceptions.ServerError,
                        exceptions.TooManyRequests,
                        exceptions.Aborted,
                        exceptions.RetryError)


@contextmanager
def _translate_errors(secret_id):
    try:
        yield
    except RETRYABLE_EXCEPTIONS as e:
        raise StoreUnavailable(secret_id, e) from e


def _version_number(version_name):
    return int(version_name.rsplit("/", 1)[1])


def _token_annotation(version_number):
    return f"{TOKEN_ANNOTATION_PREFIX}{version_number}"


class GCPSecretStore(SecretStore):
    """Drives rotation stages on Google Cloud Secret Manager.

    Secret ids are full resource names i.e. ``projects/<project>/secrets/<secret>``.

    The credentials used need "roles/secretmanager.secretVersionManager" to add
    versions, "roles/secretmanager.secretAccessor" to read pending versions back
    and ``secretmanager.secrets.update`` to move aliases.
    """

    def __init__(self, _credentials_callback=None):
        """Initializes the GCPSecretStore.

        Args:
            _credentials_callback (callable, optional): A function that returns a
                tuple of (credentials, project_id). If not provided,
                `google.auth.default()` is used.
        """
        self._credentials_callback = _credentials_callback
        self.ns = threading.local()

    @property
    def credentials(self):
        if not hasattr(self.ns, "_credentials"):
            if self._credentials_callback is not None:
                _credentials, _project_id = self._credentials_callback()
            else:
                _credentials, _project_id = google.auth.default()
            self.ns._credentials = _credentials
        return self.ns._credentials

    @property
    def _client(self):
        """Provides a thread-safe Secret Manager service client."""
        if not hasattr(self.ns, "client"):
            self.ns.client = secretmanager.SecretManagerServiceClient(
                credentials=self.credentials
            )
        return self.ns.client

    def _get_secret(self, secret_id):
        return self._client.get_secret(request={"name": secret_id})

    @staticmethod
    def _version_for_token(secret, request_token):
        for key, value in secret.annotations.items():
            if key.startswith(TOKEN_ANNOTATION_PREFIX) and value == request_token:
                return int(key[len(TOKEN_ANNOTATION_PREFIX):])
        return None

    @staticmethod
    def _stages(aliases, version_number):
        return tuple(sorted(stage for stage, alias in STAGE_ALIASES.items()
                            if aliases.get(alias) == version_number))

    def _access(self, secret_id, version_number):
        response = self._client.access_secret_version(
            request={"name": f"{secret_id}/versions/{version_number}"}
        )
        data = response.payload.data
        crc32c = google_crc32c.Checksum()
        crc32c.update(data)
        if response.payload.data_crc32c and \
                response.payload.data_crc32c != int(crc32c.hexdigest(), 16):
            raise CorruptSecretVersion(secret_id, str(version_number))
        return data.decode("utf-8")

    def _update_stages(self, secret_id, secret, aliases, annotations):
        aliased = {str(version_number) for version_number in aliases.values()}
        annotations = {key: value for key, value in annotations.items()
                       if not key.startswith(TOKEN_ANNOTATION_PREFIX)
                       or key[len(TOKEN_ANNOTATION_PREFIX):] in aliased}
        self._client.update_secret(
            request={
                "secret": {
                    "name": secret_id,
                    "version_aliases": aliases,
                    "annotations": annotations,
                    "etag": secret.etag,
                },
                "update_mask": {"paths": ["version_aliases", "annotations"]},
            }
        )

    def get_pending(self, secret_id, request_token):
        with _translate_errors(secret_id):
            secret = self._get_secret(secret_id)
            aliases = dict(secret.version_aliases)
            target = self._version_for_token(secret, request_token)
            if target is None or aliases.get(STAGE_ALIASES[PENDING]) != target:
                return None
            return SecretVersion(version_id=str(target),
                                 value=self._access(secret_id, target),
                                 request_token=request_token,
                                 stages=self._stages(aliases, target))

    def put_pending(self, secret_id, request_token, value):
        with _translate_errors(secret_id):
            secret = self._get_secret(secret_id)
            aliases = dict(secret.version_aliases)
            existing = self._version_for_token(secret, request_token)
            if existing is not None:
                if aliases.get(STAGE_ALIASES[PENDING]) == existing:
                    return str(existing)
                raise VersionAlreadyExists(secret_id, request_token)

            data = value.encode("utf8")
            crc32c = google_crc32c.Checksum()
            crc32c.update(data)
            response = self._client.add_secret_version(
                request={
                    "parent": secret_id,
                    "payload": {"data": data, "data_crc32c": int(crc32c.hexdigest(), 16)},
                }
            )
            target = _version_number(response.name)

            aliases[STAGE_ALIASES[PENDING]] = target
            annotations = dict(secret.annotations)
            annotations[_token_annotation(target)] = request_token
            self._update_stages(secret_id, secret, aliases, annotations)
            logging.getLogger(__name__).info(
                f"Added version {target} to {secret_id} as pending")
            return str(target)

    def promote_pending(self, secret_id, request_token, previous_version_id=None):
        # The pending alias names a single version so promoting the token's
        # version also clears it from previous_version_id.
        with _translate_errors(secret_id):
            secret = self._get_secret(secret_id)
            aliases = dict(secret.version_aliases)
            target = self._version_for_token(secret, request_token)
            if target is None:
                raise PendingVersionNotFound(secret_id, request_token)

            current = aliases.get(STAGE_ALIASES[CURRENT])
            if current == target:
                return
            if aliases.get(STAGE_ALIASES[PENDING]) != target:
                raise PendingVersionNotFound(secret_id, request_token)

            if current is not None:
                aliases[STAGE_ALIASES[PREVIOUS]] = current
            aliases[STAGE_ALIASES[CURRENT]] = target
            del aliases[STAGE_ALIASES[PENDING]]
            self._update_stages(secret_id, secret, aliases, dict(secret.annotations))
            logging.getLogger(__name__).info(
                f"Moved current alias of {secret_id} from version {current} to {target}")

    def get_current(self, secret_id):
        with _translate_errors(secret_id):
            secret = self._get_secret(secret_id)
            aliases = dict(secret.version_aliases)
            current = aliases.get(STAGE_ALIASES[CURRENT])
            if current is None:
                raise NoCurrentVersion(secret_id)
            annotations = dict(secret.annotations)
            return SecretVersion(version_id=str(current),
                                 value=self._access(secret_id, current),
                                 request_token=annotations.get(_token_annotation(current)),
                                 stages=self._stages(aliases, current))
