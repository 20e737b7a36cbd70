"""
Exception types raised by certificate stores and the reload manager.
"""

from typing import List, Optional


class CertificateStoreError(Exception):
    """Base class for all errors raised by this package."""


class LoadError(CertificateStoreError):
    """A certificate/key pair could not be read, parsed or paired."""

    def __init__(self, message: str, cert_path: Optional[str] = None, key_path: Optional[str] = None):
        super().__init__(message)
        self.cert_path = cert_path
        self.key_path = key_path


class SelectionError(CertificateStoreError):
    """The handshake compatibility check itself failed."""


class ConfigurationError(CertificateStoreError):
    """A store was asked for a certificate it can never provide."""


class AggregateError(CertificateStoreError):
    """
    One or more member stores failed to reload.

    Members that reloaded successfully keep their new certificates; the
    failures are collected in ``errors`` in member order.
    """

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} store(s) failed to reload: {details}")
