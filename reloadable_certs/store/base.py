"""
Capability interfaces shared by every certificate store.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..certificate import Certificate
from ..handshake import HandshakeInfo


class Reloadable(ABC):
    """Something that can be asked to refresh itself from its source."""

    @abstractmethod
    def reload(self) -> None:
        """Reload from the underlying source, raising on failure."""
        pass


class Store(Reloadable):
    """A reloadable supplier of certificates for TLS handshakes."""

    @abstractmethod
    def get_certificate_no_default(self, info: HandshakeInfo) -> Optional[Certificate]:
        """Return a certificate compatible with the client, or None."""
        pass

    @abstractmethod
    def get_certificate(self, info: HandshakeInfo) -> Certificate:
        """Return a certificate for the client, falling back to a default."""
        pass
