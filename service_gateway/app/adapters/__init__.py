"""
Adapters package for the Gateway Service.

Contains the HTTP client for the private internal domain APIs. Adapters
send what they are given and map transport outcomes onto shared errors;
signing happens before a request reaches them.
"""

from .internal_client import InternalApiClient

__all__ = [
    "InternalApiClient",
]
