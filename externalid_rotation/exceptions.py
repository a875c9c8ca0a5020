# -*- coding: utf-8 -*-
from enum import Enum


class SecretCacheError(Exception):
    """Base Error class."""


class NoCurrentVersion(SecretCacheError):
    CUSTOM_ERROR_MESSAGE = "Secret {} has no version staged as CURRENT"

    # the secret must be populated before it can be read or rotated
    retryable = False

    def __init__(self, secret_id):
        super(NoCurrentVersion, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(secret_id))
        self._secret_id = secret_id

    @property
    def secret_id(self):
        return self._secret_id


class SecretRotatorError(Exception):
    """Base Error class."""

    # Whether re-invoking the same step with the same request token may succeed
    retryable = False


class EntropySourceError(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Secure random source unavailable {}"

    def __init__(self, error):
        super(EntropySourceError, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(str(error)))
        self._error = error

    @property
    def error(self):
        return self._error


class ValidationReason(Enum):
    MISSING = "Missing"
    WRONG_TYPE = "WrongType"
    TOO_SHORT = "TooShort"
    TOO_LONG = "TooLong"
    INVALID_CHARACTERS = "InvalidCharacters"


class ValidationError(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "External id {}failed validation {}: {}"

    def __init__(self, reason, detail, secret_id=None):
        where = f"for secret {secret_id} " if secret_id else ""
        super(ValidationError, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(where,
                                                                                reason.value,
                                                                                detail))
        self._reason = reason
        self._secret_id = secret_id

    @property
    def reason(self):
        return self._reason

    @property
    def secret_id(self):
        return self._secret_id


class StoreUnavailable(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Secret store unavailable for secret {} error {}"

    retryable = True

    def __init__(self, secret_id, error):
        super(StoreUnavailable, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(secret_id,
                                                                                str(error)))
        self._secret_id = secret_id
        self._error = error

    @property
    def secret_id(self):
        return self._secret_id

    @property
    def error(self):
        return self._error


class PendingVersionNotFound(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Secret {} has no PENDING version for request token {}"

    def __init__(self, secret_id, request_token):
        super(PendingVersionNotFound, self).__init__(
            self.CUSTOM_ERROR_MESSAGE.format(secret_id, request_token))
        self._secret_id = secret_id
        self._request_token = request_token

    @property
    def secret_id(self):
        return self._secret_id

    @property
    def request_token(self):
        return self._request_token


class VersionAlreadyExists(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Secret {} already has a version for request token {} " \
                           "that is no longer PENDING"

    def __init__(self, secret_id, request_token):
        super(VersionAlreadyExists, self).__init__(
            self.CUSTOM_ERROR_MESSAGE.format(secret_id, request_token))
        self._secret_id = secret_id
        self._request_token = request_token

    @property
    def secret_id(self):
        return self._secret_id

    @property
    def request_token(self):
        return self._request_token


class InvalidPhase(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Invalid rotation step {!r}"

    def __init__(self, step):
        super(InvalidPhase, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(step))
        self._step = step

    @property
    def step(self):
        return self._step


class CorruptSecretVersion(SecretRotatorError):
    CUSTOM_ERROR_MESSAGE = "Secret {} version {} payload does not match its checksum"

    def __init__(self, secret_id, version_id):
        super(CorruptSecretVersion, self).__init__(
            self.CUSTOM_ERROR_MESSAGE.format(secret_id, version_id))
        self._secret_id = secret_id
        self._version_id = version_id

    @property
    def secret_id(self):
        return self._secret_id

    @property
    def version_id(self):
        return self._version_id
