"""
Certificate store backed by a single certificate/key file pair.
"""

import threading
import logging
from typing import Optional

from ..certificate import Certificate, load_key_pair
from ..handshake import HandshakeInfo, supports_certificate
from .base import Store

logger = logging.getLogger("reloadable_certs.store")


class FileStore(Store):
    """
    Store serving one certificate loaded from a PEM certificate and key file.

    The certificate can be replaced at runtime with ``reload``. Readers on
    the handshake path always see either the previous or the new certificate
    in full; a failed reload keeps the previous one.
    """

    def __init__(self, cert_path: str, key_path: str, password: Optional[bytes] = None):
        """
        Initialize the store and perform the initial load.

        Args:
            cert_path: Path to the PEM certificate chain, leaf first
            key_path: Path to the PEM private key
            password: Password for an encrypted private key

        Raises:
            LoadError: If the initial load fails
        """
        self._paths = (str(cert_path), str(key_path))
        self.password = password
        self._reload_lock = threading.Lock()
        self._current: Optional[Certificate] = None

        self.reload()

    @property
    def cert_path(self) -> str:
        return self._paths[0]

    @property
    def key_path(self) -> str:
        return self._paths[1]

    @property
    def current(self) -> Certificate:
        """The most recently loaded certificate."""
        return self._current

    def reconfigure(self, cert_path: str, key_path: str) -> None:
        """
        Point the store at a new certificate/key pair.

        The new paths take effect on the next ``reload``; the certificate
        being served is not touched.
        """
        with self._reload_lock:
            self._paths = (str(cert_path), str(key_path))
        logger.info(f"Store reconfigured to {cert_path}, {key_path}")

    def reload(self) -> None:
        """
        Re-read the certificate and key from the configured paths.

        Raises:
            LoadError: If the files cannot be loaded; the current certificate
                is left in place
        """
        with self._reload_lock:
            cert_path, key_path = self._paths
            certificate = load_key_pair(cert_path, key_path, password=self.password)

            previous = self._current
            # Single reference assignment publishes the fully built certificate
            self._current = certificate

        if previous is None:
            logger.info(f"Loaded certificate {certificate.fingerprint} from {cert_path}")
        elif previous != certificate:
            logger.info(f"Replaced certificate {previous.fingerprint} with {certificate.fingerprint}")
        else:
            logger.info(f"Reloaded unchanged certificate {certificate.fingerprint}")

    def get_certificate_no_default(self, info: HandshakeInfo) -> Optional[Certificate]:
        certificate = self._current
        if supports_certificate(info, certificate):
            return certificate
        return None

    def get_certificate(self, info: HandshakeInfo) -> Certificate:
        return self._current

    def __repr__(self):
        return f"FileStore(cert_path={self.cert_path!r}, key_path={self.key_path!r})"
