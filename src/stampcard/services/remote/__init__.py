"""Remote collaborators: shared key/value store, REST endpoints, connectivity."""

from .api_client import LoyaltyApiClient
from .base import RemoteStore
from .connectivity import ConnectivityProbe, HealthCheckProbe, RedisPingProbe, StaticConnectivityProbe
from .http_store import HttpRemoteStore
from .redis_store import RedisRemoteStore

__all__ = [
    "ConnectivityProbe",
    "HealthCheckProbe",
    "HttpRemoteStore",
    "LoyaltyApiClient",
    "RedisPingProbe",
    "RedisRemoteStore",
    "RemoteStore",
    "StaticConnectivityProbe",
]
