"""Clients for the AI experiments backend."""

from .backend import BackendClient, BackendClientError
from .capabilities import (
    CapabilitiesClient,
    CapabilityBackend,
    UnsupportedLanguageError,
)
from .json_data import JsonData, JsonDataClient, KeyValueStore

__all__ = [
    "BackendClient",
    "BackendClientError",
    "CapabilitiesClient",
    "CapabilityBackend",
    "UnsupportedLanguageError",
    "JsonData",
    "JsonDataClient",
    "KeyValueStore",
]
