# -*- coding: utf-8 -*-
"""Entry points for functions that rotate external ids.

lambda_handler  - AWS Lambda rotation function, invoked once per step by Secrets Manager.
pubsub_handler  - Google Cloud Function subscribed to a secret's rotation topic.

A store and rotator are built per invocation from the environment, see
`externalid_rotation.config`.
"""

import base64
import logging

from .aws_store import AWSSecretStore
from .config import RotationConfig
from .gcp_store import GCPSecretStore
from .managers import ExternalIdMechanic, SecretRotator


def build_store(config):
    if config.store == "gcp":
        return GCPSecretStore()
    return AWSSecretStore(region_name=config.region_name)


def build_rotator(config=None, store=None):
    if config is None:
        config = RotationConfig.from_environ()
    if store is None:
        store = build_store(config)
    return SecretRotator(store, ExternalIdMechanic(length=config.external_id_length))


def lambda_handler(event, context, rotator=None):
    if rotator is None:
        rotator = build_rotator()
    if context is not None:
        logging.getLogger(__name__).info(
            f"External id rotation invoked as {getattr(context, 'function_name', None)} "
            f"request {getattr(context, 'aws_request_id', None)}")
    return rotator.handle_event(event, context)


def pubsub_handler(event, context, rotator=None):
    """Handles a background Pub/Sub event carrying a Secret Manager notification.

    Args:
        event (dict): Has ``attributes`` and base64 encoded ``data``.
        context: The Cloud Functions event context.
    """
    if rotator is None:
        # rotation notifications only come from Secret Manager
        rotator = build_rotator(RotationConfig.from_environ(), store=GCPSecretStore())
    data = base64.b64decode(event["data"]) if event.get("data") else b""
    return rotator.rotate_secret(event.get("attributes") or {}, data)
