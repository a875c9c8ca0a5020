# -*- coding: utf-8 -*-
"""
AWS Secrets Manager implementation of the secret store contract.

Stage labels map directly onto Secrets Manager version stages (AWSCURRENT, AWSPENDING,
AWSPREVIOUS) and a version id is the ClientRequestToken that created it.

Promotion takes two UpdateSecretVersionStage calls. The first moves AWSCURRENT onto
the new version, atomically for readers, and the service moves AWSPREVIOUS itself.
The second removes AWSPENDING from the new version. A failure between the two leaves
the new version staged both AWSCURRENT and AWSPENDING. Readers already get the
validated value and retrying finishSecret completes the removal.
"""

import logging
import threading
from contextlib import contextmanager

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import NoCurrentVersion, PendingVersionNotFound, StoreUnavailable, \
    VersionAlreadyExists
from .stores import CURRENT, PENDING, PREVIOUS, SecretStore, SecretVersion

VERSION_STAGES = {CURRENT: "AWSCURRENT",
                  PENDING: "AWSPENDING",
                  PREVIOUS: "AWSPREVIOUS"}

RETRYABLE_ERROR_CODES = ("InternalServiceError",
                         "ThrottlingException",
                         "ServiceUnavailable",
                         "RequestTimeout",
                         "RequestTimeoutException")


def _error_code(error):
    return error.response.get("Error", {}).get("Code")


@contextmanager
def _translate_errors(secret_id):
    try:
        yield
    except BotoCoreError as e:
        # connection failures and timeouts
        raise StoreUnavailable(secret_id, e) from e
    except ClientError as e:
        if _error_code(e) in RETRYABLE_ERROR_CODES:
            raise StoreUnavailable(secret_id, e) from e
        raise


def _stages(version_stages):
    return tuple(sorted(stage for stage, aws_stage in VERSION_STAGES.items()
                        if aws_stage in version_stages))


class AWSSecretStore(SecretStore):
    """Drives rotation stages on AWS Secrets Manager.

    The role used needs secretsmanager:GetSecretValue, secretsmanager:PutSecretValue,
    secretsmanager:DescribeSecret and secretsmanager:UpdateSecretVersionStage on the
    secret.
    """

    def __init__(self, region_name=None, _client_callback=None):
        """Initializes the AWSSecretStore.

        Args:
            region_name (str, optional): Region of the secrets. Defaults to the
                boto3 configured region.
            _client_callback (callable, optional): Returns a secretsmanager client.
                If not provided a client is built from a new boto3 session.
        """
        self._region_name = region_name
        self._client_callback = _client_callback
        self.ns = threading.local()

    @property
    def _client(self):
        """Provides a per thread secretsmanager client, boto3 sessions are not thread safe."""
        if not hasattr(self.ns, "client"):
            if self._client_callback is not None:
                self.ns.client = self._client_callback()
            else:
                self.ns.client = boto3.session.Session().client(
                    "secretsmanager", region_name=self._region_name)
        return self.ns.client

    def get_pending(self, secret_id, request_token):
        with _translate_errors(secret_id):
            try:
                response = self._client.get_secret_value(SecretId=secret_id,
                                                         VersionId=request_token,
                                                         VersionStage=VERSION_STAGES[PENDING])
            except ClientError as e:
                if _error_code(e) == "ResourceNotFoundException":
                    return None
                raise
        return SecretVersion(version_id=response["VersionId"],
                             value=response["SecretString"],
                             request_token=response["VersionId"],
                             stages=_stages(response.get("VersionStages", [])))

    def put_pending(self, secret_id, request_token, value):
        existing = self.get_pending(secret_id, request_token)
        if existing is not None:
            return existing.version_id

        with _translate_errors(secret_id):
            try:
                response = self._client.put_secret_value(
                    SecretId=secret_id,
                    ClientRequestToken=request_token,
                    SecretString=value,
                    VersionStages=[VERSION_STAGES[PENDING]],
                )
            except ClientError as e:
                if _error_code(e) == "ResourceExistsException":
                    raise VersionAlreadyExists(secret_id, request_token) from e
                raise
        logging.getLogger(__name__).info(
            f"Put version {response['VersionId']} to {secret_id} as AWSPENDING")
        return response["VersionId"]

    def _remove_pending(self, secret_id, version_id):
        with _translate_errors(secret_id):
            self._client.update_secret_version_stage(SecretId=secret_id,
                                                     VersionStage=VERSION_STAGES[PENDING],
                                                     RemoveFromVersionId=version_id)

    def promote_pending(self, secret_id, request_token, previous_version_id=None):
        # AWSPENDING is attached to one version at most, so when the token's
        # version holds it previous_version_id cannot. AWSCURRENT is removed from
        # whichever version the service reports as current.
        with _translate_errors(secret_id):
            metadata = self._client.describe_secret(SecretId=secret_id)
        versions = metadata.get("VersionIdsToStages", {})

        stages = versions.get(request_token)
        if stages is None:
            raise PendingVersionNotFound(secret_id, request_token)

        if VERSION_STAGES[CURRENT] in stages:
            if VERSION_STAGES[PENDING] in stages:
                # an earlier attempt failed between the two stage moves
                self._remove_pending(secret_id, request_token)
            return

        if VERSION_STAGES[PENDING] not in stages:
            raise PendingVersionNotFound(secret_id, request_token)

        current = None
        for version_id, version_stages in versions.items():
            if VERSION_STAGES[CURRENT] in version_stages:
                current = version_id
                break

        move_request = {"SecretId": secret_id,
                        "VersionStage": VERSION_STAGES[CURRENT],
                        "MoveToVersionId": request_token}
        if current is not None:
            move_request["RemoveFromVersionId"] = current
        with _translate_errors(secret_id):
            self._client.update_secret_version_stage(**move_request)
        logging.getLogger(__name__).info(
            f"Moved AWSCURRENT of {secret_id} from version {current} to {request_token}")

        self._remove_pending(secret_id, request_token)

    def get_current(self, secret_id):
        with _translate_errors(secret_id):
            try:
                response = self._client.get_secret_value(SecretId=secret_id,
                                                         VersionStage=VERSION_STAGES[CURRENT])
            except ClientError as e:
                if _error_code(e) == "ResourceNotFoundException":
                    raise NoCurrentVersion(secret_id) from e
                raise
        return SecretVersion(version_id=response["VersionId"],
                             value=response["SecretString"],
                             request_token=response["VersionId"],
                             stages=_stages(response.get("VersionStages", [])))
