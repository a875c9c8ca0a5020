# -*- coding: utf-8 -*-
import base64
import json
import unittest
from types import SimpleNamespace

from externalid_rotation import AWSSecretStore, ExternalIdMechanic, GCPSecretStore, \
    InMemorySecretStore, InvalidPhase, RotationConfig, SecretRotator, parse_external_id, \
    serialize_external_id
from externalid_rotation.handler import build_rotator, build_store, lambda_handler, \
    pubsub_handler

INITIAL_EXTERNAL_ID = "InitialExternalId0001"


class TestRotationConfig(unittest.TestCase):

    def test_defaults(self):
        config = RotationConfig.from_environ({})
        self.assertEqual(config, RotationConfig(store="aws",
                                                external_id_length=32,
                                                cache_ttl=60.0,
                                                region_name=None))

    def test_from_environ(self):
        config = RotationConfig.from_environ({"EXTERNAL_ID_STORE": "GCP",
                                              "EXTERNAL_ID_LENGTH": "64",
                                              "EXTERNAL_ID_CACHE_TTL": "120",
                                              "AWS_DEFAULT_REGION": "eu-west-1"})
        self.assertEqual(config.store, "gcp")
        self.assertEqual(config.external_id_length, 64)
        self.assertEqual(config.cache_ttl, 120.0)
        self.assertEqual(config.region_name, "eu-west-1")

    def test_region_precedence(self):
        config = RotationConfig.from_environ({"AWS_REGION": "us-east-1",
                                              "AWS_DEFAULT_REGION": "eu-west-1"})
        self.assertEqual(config.region_name, "us-east-1")

    def test_invalid(self):
        for environ in [{"EXTERNAL_ID_STORE": "vault"},
                        {"EXTERNAL_ID_LENGTH": "7"},
                        {"EXTERNAL_ID_LENGTH": "1225"},
                        {"EXTERNAL_ID_LENGTH": "thirty-two"},
                        {"EXTERNAL_ID_CACHE_TTL": "5"}]:
            with self.assertRaises(ValueError):
                RotationConfig.from_environ(environ)


class TestHandlers(unittest.TestCase):
    def setUp(self):
        self.store = InMemorySecretStore()
        self.store.seed("external-id", serialize_external_id(INITIAL_EXTERNAL_ID),
                        version_id="v0")
        self.rotator = SecretRotator(self.store)

    def test_build_store(self):
        self.assertIsInstance(build_store(RotationConfig(store="gcp")), GCPSecretStore)
        self.assertIsInstance(build_store(RotationConfig(store="aws", region_name="eu-west-1")),
                              AWSSecretStore)

    def test_build_rotator(self):
        rotator = build_rotator(RotationConfig(external_id_length=48), store=self.store)
        self.assertIs(rotator.store, self.store)
        self.assertIsInstance(rotator.mechanic, ExternalIdMechanic)
        self.assertEqual(rotator.mechanic.length, 48)

    def test_lambda_handler(self):
        context = SimpleNamespace(function_name="ExternalIdRotationFunction",
                                  aws_request_id="request-1")
        for step in ("createSecret", "setSecret", "testSecret", "finishSecret"):
            response = lambda_handler({"SecretId": "external-id",
                                       "ClientRequestToken": "t1",
                                       "Step": step,
                                       "PreviousVersionId": "v0"},
                                      context,
                                      rotator=self.rotator)
            self.assertEqual(response, {"statusCode": 200})
        self.assertEqual(self.store.get_current("external-id").request_token, "t1")

    def test_lambda_handler_invalid_step(self):
        with self.assertRaises(InvalidPhase):
            lambda_handler({"SecretId": "external-id",
                            "ClientRequestToken": "t1",
                            "Step": "deleteSecret"},
                           None,
                           rotator=self.rotator)

    def test_pubsub_handler(self):
        event = {"attributes": {"eventType": "SECRET_ROTATE", "secretId": "external-id"},
                 "data": base64.b64encode(json.dumps({"name": "external-id"}).encode("utf-8"))}
        token = pubsub_handler(event, None, rotator=self.rotator)
        current = self.store.get_current("external-id")
        self.assertEqual(current.request_token, token)
        self.assertNotEqual(parse_external_id(current.value), INITIAL_EXTERNAL_ID)

    def test_pubsub_handler_ignores_other_events(self):
        event = {"attributes": {"eventType": "SECRET_UPDATE", "secretId": "external-id"}}
        self.assertIsNone(pubsub_handler(event, None, rotator=self.rotator))
        self.assertEqual(self.store.get_current("external-id").version_id, "v0")
