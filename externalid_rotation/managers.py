# -*- coding: utf-8 -*-

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from .exceptions import InvalidPhase, PendingVersionNotFound
from .generator import DEFAULT_EXTERNAL_ID_LENGTH, generate_external_id
from .validator import parse_external_id, serialize_external_id, validate_external_id

"""
Rotation of a secret through a versioned secret store.

A rotation attempt is identified by a request token and runs as four steps, each
invoked separately by whatever triggers rotation (the AWS Secrets Manager rotation
service, a Pub/Sub notification, a scheduler). Every step may be retried with the same
token.

createSecret  - generate a candidate and store it as PENDING for the token. If the token
                already has a PENDING version nothing new is generated.
setSecret     - push the candidate to any downstream system that must accept it before
                it is served.
testSecret    - read the PENDING version back from the store and validate it.
finishSecret  - promote the PENDING version to CURRENT.

CURRENT keeps serving the prior value until finishSecret succeeds, so a failed or
abandoned attempt never leaves consumers without a valid secret.

The rotator holds no state between steps, everything is re-read from the store.
"""


class RotationStep(Enum):
    CREATE_SECRET = "createSecret"
    SET_SECRET = "setSecret"
    TEST_SECRET = "testSecret"
    FINISH_SECRET = "finishSecret"

    @classmethod
    def parse(cls, step):
        if isinstance(step, cls):
            return step
        try:
            return cls(step)
        except ValueError:
            raise InvalidPhase(step) from None


@dataclass(frozen=True)
class RotationRequest:
    secret_id: str
    request_token: str
    step: RotationStep
    previous_version_id: str = None

    def __post_init__(self):
        # accepts the step name as sent by the trigger
        object.__setattr__(self, "step", RotationStep.parse(self.step))

    @classmethod
    def from_event(cls, event):
        """Builds a request from a Secrets Manager rotation event.

        Args:
            event (dict): Holds ``SecretId``, ``ClientRequestToken``, ``Step`` and
                optionally ``PreviousVersionId``.
        """
        for key in ("SecretId", "ClientRequestToken"):
            if not event.get(key):
                raise ValueError(f"Rotation event is missing {key}")
        return cls(secret_id=event["SecretId"],
                   request_token=event["ClientRequestToken"],
                   step=RotationStep.parse(event.get("Step")),
                   previous_version_id=event.get("PreviousVersionId"))


class SecretRotatorMechanic(ABC):
    """Abstract Base Class for a secret rotation mechanic.

    The `SecretRotator` drives the store and the step sequence, a mechanic supplies
    what is specific to the kind of credential being rotated: how new material is
    made, whether anything downstream must be told about it and how it is checked.
    """

    @abstractmethod
    def create_new_secret(self, rotator, request):
        """Creates the new secret material.

        Args:
            rotator (SecretRotator): The rotator instance calling this method.
            request (RotationRequest): The createSecret request.

        Returns:
            str: The payload to store as the new PENDING version.
        """
        return None

    def set_secret(self, rotator, request):
        """Configures any downstream system with the PENDING secret.

        Optional. The default does nothing for credentials where nothing outside
        the store needs to know the new value.
        """
        return None

    @abstractmethod
    def validate_secret(self, rotator, request, version):
        """Validates the PENDING version as read back from the store.

        Args:
            rotator (SecretRotator): The rotator instance calling this method.
            request (RotationRequest): The testSecret request.
            version (SecretVersion): The stored PENDING version.

        Should raise an exception if the version must not be promoted.
        """
        return None


class ExternalIdMechanic(SecretRotatorMechanic):
    """A `SecretRotatorMechanic` for external ids used on cross-account role trust.

    Stored payloads are ``{"externalId": "<value>"}``. There is no downstream system to
    update, the trust policy reads the secret directly, so setSecret is inert.
    """

    def __init__(self,
                 generator=generate_external_id,
                 validator=validate_external_id,
                 length=DEFAULT_EXTERNAL_ID_LENGTH):
        """Initializes the ExternalIdMechanic.

        Args:
            generator (callable, optional): Called with ``length``, returns a new
                external id. Defaults to `generate_external_id`.
            validator (callable, optional): Called with an external id and
                ``secret_id``, raises `ValidationError` if unacceptable. Defaults
                to `validate_external_id`.
            length (int, optional): Length of generated external ids. Defaults to 32.
        """
        self._generator = generator
        self._validator = validator
        self._length = length

    @property
    def length(self):
        return self._length

    def create_new_secret(self, rotator, request):
        external_id = self._generator(self._length)
        # fail before anything is stored
        self._validator(external_id, secret_id=request.secret_id)
        return serialize_external_id(external_id)

    def validate_secret(self, rotator, request, version):
        external_id = parse_external_id(version.value, secret_id=request.secret_id)
        self._validator(external_id, secret_id=request.secret_id)


class SecretRotator:
    """Runs rotation steps for secrets against a secret store.

    This class acts as the "Context" in a strategy pattern. It sequences store
    operations for each step and delegates credential specific work to a
    `SecretRotatorMechanic` (the "Strategy").

    Store and mechanic are passed in, nothing is shared between instances, so
    rotators for different secrets can run concurrently.

    Attributes:
        store (SecretStore): Where versions and stage labels live.
        mechanic (SecretRotatorMechanic): Strategy for the credential type.
    """

    def __init__(self, store, mechanic=None):
        self._store = store
        self._mechanic = mechanic if mechanic is not None else ExternalIdMechanic()
        self._steps = {
            RotationStep.CREATE_SECRET: self.create_secret,
            RotationStep.SET_SECRET: self.set_secret,
            RotationStep.TEST_SECRET: self.test_secret,
            RotationStep.FINISH_SECRET: self.finish_secret,
        }

    @property
    def store(self):
        return self._store

    @property
    def mechanic(self):
        return self._mechanic

    def handle_event(self, event, context=None):
        """Handles one step event from the Secrets Manager rotation service."""
        return self.rotate(RotationRequest.from_event(event))

    def rotate(self, request):
        """Runs the step named by ``request``.

        Returns:
            dict: ``{"statusCode": 200}`` when the step succeeded.

        Raises:
            Any error from the store or mechanic, after logging it with the step,
            secret and token so the trigger can decide to retry or abort.
        """
        logging.getLogger(__name__).info(
            f"Rotation step {request.step.value} started for secret {request.secret_id} "
            f"token {request.request_token}")
        try:
            self._steps[request.step](request)
        except Exception:
            logging.getLogger(__name__).exception(
                f"Rotation step {request.step.value} failed for secret {request.secret_id} "
                f"token {request.request_token}")
            raise
        logging.getLogger(__name__).info(
            f"Rotation step {request.step.value} completed for secret {request.secret_id}")
        return {"statusCode": 200}

    def create_secret(self, request):
        if self.store.get_pending(request.secret_id, request.request_token) is not None:
            logging.getLogger(__name__).info(
                f"Secret {request.secret_id} already has a pending version for token "
                f"{request.request_token}")
            return

        secret = self.mechanic.create_new_secret(self, request)
        version_id = self.store.put_pending(request.secret_id, request.request_token, secret)
        logging.getLogger(__name__).info(
            f"Stored pending version {version_id} for secret {request.secret_id}")

    def set_secret(self, request):
        self.mechanic.set_secret(self, request)

    def test_secret(self, request):
        version = self.store.get_pending(request.secret_id, request.request_token)
        if version is None:
            raise PendingVersionNotFound(request.secret_id, request.request_token)
        self.mechanic.validate_secret(self, request, version)

    def finish_secret(self, request):
        self.store.promote_pending(request.secret_id,
                                   request.request_token,
                                   request.previous_version_id)

    def rotate_all_steps(self, secret_id, request_token=None):
        """Runs a whole rotation attempt, stopping at the first failing step.

        Args:
            secret_id (str): The secret to rotate.
            request_token (str, optional): Token of the attempt. A new uuid4 is
                used if not provided; pass the token of a failed attempt to resume it.

        Returns:
            str: The request token used.
        """
        if request_token is None:
            request_token = str(uuid.uuid4())
        try:
            previous_version_id = self.store.get_current(secret_id).version_id
        except Exception:
            logging.getLogger(__name__).exception(
                f"Rotation of secret {secret_id} token {request_token} could not read "
                f"the current version")
            raise
        for step in RotationStep:
            self.rotate(RotationRequest(secret_id=secret_id,
                                        request_token=request_token,
                                        step=step,
                                        previous_version_id=previous_version_id))
        return request_token

    def rotate_secret(self, attributes, data):
        """
        Handles a Secret Manager rotation notification delivered by Pub/Sub.

        Secret Manager sends a single SECRET_ROTATE event per rotation period, so the
        four steps are run here in order with a new request token.

        Args:
            attributes (dict): The attributes of the Pub/Sub message. Expected to
                contain `eventType` and `secretId`.
            data (bytes): The data payload of the Pub/Sub message, the secret
                resource in JSON format.

        Returns:
            str: The request token used, or None if the message was ignored.
        """
        if attributes.get("eventType") != "SECRET_ROTATE" or "secretId" not in attributes:
            logging.getLogger(__name__).warning(
                f"Received event that does not meet predicates for secret rotation attributes:"
                f"{json.dumps(attributes)}, data:{data.decode('utf-8') if data else None}"
            )
            return None
        return self.rotate_all_steps(attributes["secretId"])
