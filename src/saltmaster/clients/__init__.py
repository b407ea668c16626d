from saltmaster.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from saltmaster.clients.equinix import EquinixMetalClient
from saltmaster.clients.ns1 import NS1Client

__all__ = [
    "BaseHTTPClient",
    "EquinixMetalClient",
    "NS1Client",
    "PermanentHTTPError",
    "RetryableHTTPError",
]
