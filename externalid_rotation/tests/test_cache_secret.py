# -*- coding: utf-8 -*-
"""
This modules purpose is to test the consumer side caching of CURRENT

"""
import gc
import json
import unittest
import weakref
from unittest import mock

from externalid_rotation import CachedSecret, InMemorySecretStore, InjectExternalId, \
    NoCurrentVersion, SecretRotator, StoreUnavailable, ValidationError, ValidationReason, \
    parse_external_id, serialize_external_id
from externalid_rotation.cache_secret import _background_refresh_thread

SECRET_ID = "external-id"
INITIAL_EXTERNAL_ID = "InitialExternalId0001"


class UnavailableStore(InMemorySecretStore):
    def get_current(self, secret_id):
        raise StoreUnavailable(secret_id, "timed out")


class TestCachedSecret(unittest.TestCase):
    def setUp(self):
        self.store = InMemorySecretStore()
        self.store.seed(SECRET_ID, serialize_external_id(INITIAL_EXTERNAL_ID))
        # refresh thread is tested separately
        patcher = mock.patch("externalid_rotation.cache_secret.threading.Thread")
        self.thread = patcher.start()
        self.addCleanup(patcher.stop)

    def test_get_secret(self):
        cache = CachedSecret(self.store, SECRET_ID)
        self.assertEqual(cache.get_secret(), INITIAL_EXTERNAL_ID)
        self.thread.return_value.start.assert_called_once_with()

    def test_ttl_floor(self):
        with self.assertRaises(AssertionError):
            CachedSecret(self.store, SECRET_ID, ttl=5.0)

    def test_rotation_seen_after_invalidate(self):
        cache = CachedSecret(self.store, SECRET_ID)
        self.assertEqual(cache.get_secret(), INITIAL_EXTERNAL_ID)

        SecretRotator(self.store).rotate_all_steps(SECRET_ID)
        # still the cached value until refreshed
        self.assertEqual(cache.get_secret(), INITIAL_EXTERNAL_ID)

        cache.invalidate_secret()
        self.assertEqual(cache.get_secret(),
                         parse_external_id(self.store.get_current(SECRET_ID).value))

    def test_outage_surpressed_when_cached(self):
        cache = CachedSecret(self.store, SECRET_ID)
        cache.get_secret()
        cache._store = UnavailableStore()
        self.assertIsNone(cache._get_secret())
        self.assertEqual(cache.get_secret(), INITIAL_EXTERNAL_ID)

    def test_outage_raised_when_nothing_cached(self):
        cache = CachedSecret(UnavailableStore(), SECRET_ID)
        with self.assertRaises(StoreUnavailable):
            cache.get_secret()

    def test_missing_current(self):
        cache = CachedSecret(InMemorySecretStore(), SECRET_ID)
        with self.assertRaises(NoCurrentVersion):
            cache.get_secret()

    def test_current_without_external_id(self):
        store = InMemorySecretStore()
        store.seed(SECRET_ID, json.dumps({"other": "AbCd1234"}))
        cache = CachedSecret(store, SECRET_ID)
        with self.assertRaises(ValidationError) as cm:
            cache.get_secret()
        self.assertEqual(cm.exception.reason, ValidationReason.MISSING)
        self.assertIsNone(cache.secret)

    def test_invalid_current_not_served(self):
        store = InMemorySecretStore()
        store.seed(SECRET_ID, serialize_external_id("bad-value!"))
        cache = CachedSecret(store, SECRET_ID)
        with self.assertRaises(ValidationError) as cm:
            cache.get_secret()
        self.assertEqual(cm.exception.reason, ValidationReason.INVALID_CHARACTERS)

    def test_decorator_never_injects_none(self):
        store = InMemorySecretStore()
        store.seed(SECRET_ID, json.dumps({"other": "AbCd1234"}))

        @InjectExternalId(store, SECRET_ID)
        def assume_role(external_id):
            return external_id

        with self.assertRaises(ValidationError):
            assume_role()

    def test_decorator(self):
        @InjectExternalId(self.store, SECRET_ID)
        def assume_role(external_id, role_arn, session_name=None):
            return external_id, role_arn, session_name

        self.assertEqual(assume_role("arn:aws:iam::123456789012:role/cross-account",
                                     session_name="CrossAccountAccess"),
                         (INITIAL_EXTERNAL_ID,
                          "arn:aws:iam::123456789012:role/cross-account",
                          "CrossAccountAccess"))


class TestRefreshThread(unittest.TestCase):

    def test_exits_when_cache_collected(self):
        class Gone:
            pass

        gone = Gone()
        ref = weakref.ref(gone)
        del gone
        gc.collect()
        self.assertIsNone(_background_refresh_thread(ref))

    def test_thread_started(self):
        store = InMemorySecretStore()
        store.seed(SECRET_ID, serialize_external_id(INITIAL_EXTERNAL_ID))
        cache = CachedSecret(store, SECRET_ID)
        thread = cache.t()
        self.assertIsNotNone(thread)
        self.assertTrue(thread.daemon)
        self.assertEqual(thread.name, f"refresh_secret_{SECRET_ID}")
        self.assertEqual(cache.get_secret(), INITIAL_EXTERNAL_ID)
