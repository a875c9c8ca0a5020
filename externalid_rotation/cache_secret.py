# -*- coding: utf-8 -*-
"""This modules implements caching of the CURRENT external id for consumers

"""

import logging
import sys
import threading
import weakref
from datetime import datetime, timedelta, timezone
from time import sleep

from .exceptions import StoreUnavailable
from .validator import parse_external_id, validate_external_id

SECRET_SURPRESSED_EXCEPTIONS = (StoreUnavailable,)

MIN_TTL = 30.0


# we use a thread disconnected from class to ensure background thread
# references don't keep the class it supports to stay alive beyond its natural lifecycle

def _background_refresh_thread(secret_cache_weak_ref):
    """
    Main background thread driver loop for refreshing
    :param secret_cache_weak_ref: weak reference to secret cache
    :return: None
    """
    secret_cache = secret_cache_weak_ref()
    if not secret_cache:
        return
    ttl = max(float(secret_cache.ttl), MIN_TTL)
    last_run = datetime.now(timezone.utc) - timedelta(seconds=ttl)
    del secret_cache

    # While the object that spawned thread exists
    while secret_cache_weak_ref():
        # each loop grab a reference to the object that spawned thread
        secret_cache = secret_cache_weak_ref()

        # if the object no longer exists exit
        if not secret_cache:
            break

        # the object cannot now go as we have a reference
        try:
            if (datetime.now(timezone.utc) - last_run).total_seconds() >= secret_cache.ttl:
                secret = secret_cache._get_secret()
                if secret:
                    with secret_cache.lock:
                        secret_cache.secret = secret
                        secret_cache.exception = None
                last_run = datetime.now(timezone.utc)
        except Exception:
            logging.getLogger(__name__).exception(
                f"While refreshing secret {secret_cache.secret_id}")
        # proactively delete reference
        # So object can be garbage collected during sleep
        del secret_cache
        sleep(ttl)


"""
Consumers must only ever see the value staged CURRENT. A rotation in flight keeps its
candidate PENDING until it has been validated and promoted, so reading CURRENT always
returns a validated external id and never nothing.

After a rotation the old value keeps being served by a cache for at most ttl seconds,
consumers that get rejected can call invalidate_secret to read CURRENT again.
"""


class CachedSecret():

    def __init__(self, store, secret_id, ttl=60.0):
        assert ttl >= MIN_TTL, "Trying to renew secrets at too high a frequency min is 30.0 seconds"

        self.secret = None
        self.exception = None
        self.lock = threading.Lock()
        self._store = store
        self._secret_id = secret_id
        self.ttl = ttl

        t = threading.Thread(target=_background_refresh_thread,
                             name=f"refresh_secret_{secret_id}", args=[weakref.ref(self)])
        t.daemon = True
        t.start()
        self.t = weakref.ref(t)

    @property
    def secret_id(self):
        return self._secret_id

    def get_secret(self):
        """Returns the cached CURRENT external id, fetching it if none is cached."""
        with self.lock:
            secret = self.secret
            if not secret:
                secret = self._get_secret()
                self.secret = secret
                if secret:
                    self.exception = None
                if self.exception:
                    raise self.exception[1]
            # if we have a secret store outages are surpressed
            # as retries should resolve these in background thread
            if self.exception and not isinstance(self.exception[1],
                                                 SECRET_SURPRESSED_EXCEPTIONS):
                self.secret = None
                raise self.exception[1]

        return secret

    def _get_secret(self):

        secret = None
        try:
            version = self._store.get_current(self._secret_id)
            secret = validate_external_id(
                parse_external_id(version.value, secret_id=self._secret_id),
                secret_id=self._secret_id)
        except Exception:
            self.exception = sys.exc_info()

        return secret

    def invalidate_secret(self):

        with self.lock:
            self.secret = None
