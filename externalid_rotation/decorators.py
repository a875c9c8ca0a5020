"""Decorators for use with external id caching """
from externalid_rotation.cache_secret import CachedSecret


class InjectExternalId:
    """Decorator injecting the CURRENT external id of a secret"""

    def __init__(self, store, secret_id, ttl=60):
        """
        Constructs a decorator to inject the cached external id as the first non-keyworded argument.

        :type store: externalid_rotation.stores.SecretStore
        :param store: The store holding the secret

        :type secret_id: str
        :param secret_id: The secret identifier

        :type ttl: int
        :param ttl: Time to live of the cached external id in seconds
        """

        self.cache = CachedSecret(store, secret_id, ttl=ttl)

    def __call__(self, func):
        """
        Return a function with the external id injected as first argument.

        The external id is read from the cache on every call so a rotation is
        picked up without redecorating.

        :type func: object
        :param func: The function for injecting a single non-keyworded argument too.
        :return The function with the injected argument.
        """

        def _wrapped_func(*args, **kwargs):
            """
            Internal function to execute wrapped function
            """
            return func(self.cache.get_secret(), *args, **kwargs)

        return _wrapped_func
