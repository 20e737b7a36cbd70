# reloadable_certs/__init__.py

"""
Reloadable Certificates

A library for serving TLS certificates that can be swapped at runtime
without restarting the server or dropping connections.
"""

from .certificate import Certificate, load_key_pair
from .exceptions import (
    CertificateStoreError,
    LoadError,
    SelectionError,
    AggregateError,
    ConfigurationError
)
from .handshake import HandshakeInfo, supports_certificate, sni_callback, create_server_context
from .store import Reloadable, Store, FileStore, MultiStore
from .reload import ReloadManager, Trigger, SignalTrigger, ManualTrigger

__version__ = "0.1.0"

# Make important classes available at package level
__all__ = [
    "Certificate",
    "load_key_pair",
    "CertificateStoreError",
    "LoadError",
    "SelectionError",
    "AggregateError",
    "ConfigurationError",
    "HandshakeInfo",
    "supports_certificate",
    "sni_callback",
    "create_server_context",
    "Reloadable",
    "Store",
    "FileStore",
    "MultiStore",
    "ReloadManager",
    "Trigger",
    "SignalTrigger",
    "ManualTrigger"
]
