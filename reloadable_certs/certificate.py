"""
Loaded TLS key pairs.

A ``Certificate`` bundles a leaf certificate, its chain and the matching
private key, together with a server ``ssl.SSLContext`` built once at load
time so that handshakes never touch the filesystem.
"""

import os
import ssl
import ipaddress
import logging
import tempfile
from datetime import datetime
from typing import List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa, ec, ed25519, ed448
from cryptography.x509.oid import NameOID

from .exceptions import LoadError

logger = logging.getLogger("reloadable_certs.certificate")

PrivateKey = Union[
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    ed25519.Ed25519PrivateKey,
    ed448.Ed448PrivateKey,
]

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class Certificate:
    """
    An immutable certificate chain plus private key.

    Instances are safe to share between threads once constructed.
    """

    def __init__(self, chain: List[x509.Certificate], private_key: PrivateKey):
        """
        Build a certificate bundle.

        Args:
            chain: Leaf certificate first, followed by any intermediates
            private_key: Private key belonging to the leaf certificate

        Raises:
            LoadError: If the chain is empty, the key does not belong to the
                leaf, or the ssl module rejects the pair
        """
        if not chain:
            raise LoadError("certificate chain is empty")

        if _public_key_bytes(chain[0].public_key()) != _public_key_bytes(private_key.public_key()):
            raise LoadError("private key does not match certificate public key")

        self._chain = tuple(chain)
        self._private_key = private_key
        self._context = self.new_context()

    @classmethod
    def from_pem(
        cls,
        cert_pem: bytes,
        key_pem: bytes,
        password: Optional[bytes] = None
    ) -> "Certificate":
        """
        Parse a PEM encoded chain and private key.

        Args:
            cert_pem: One or more PEM certificates, leaf first
            key_pem: PEM private key
            password: Password for an encrypted private key

        Returns:
            Certificate built from the decoded material
        """
        try:
            chain = x509.load_pem_x509_certificates(cert_pem)
        except ValueError as e:
            raise LoadError(f"failed to parse certificate: {e}") from e

        try:
            private_key = serialization.load_pem_private_key(key_pem, password=password)
        except (ValueError, TypeError) as e:
            raise LoadError(f"failed to parse private key: {e}") from e

        if not isinstance(private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey,
                                        ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
            raise LoadError(f"unsupported private key type: {type(private_key).__name__}")

        return cls(chain, private_key)

    @property
    def leaf(self) -> x509.Certificate:
        return self._chain[0]

    @property
    def chain(self) -> List[x509.Certificate]:
        return list(self._chain)

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def context(self) -> ssl.SSLContext:
        """Server SSL context presenting this certificate."""
        return self._context

    @property
    def der_chain(self) -> List[bytes]:
        """DER encoding of every certificate in the chain, leaf first."""
        return [cert.public_bytes(serialization.Encoding.DER) for cert in self._chain]

    @property
    def fingerprint(self) -> str:
        """SHA-256 fingerprint of the leaf certificate."""
        return self.leaf.fingerprint(hashes.SHA256()).hex(':')

    @property
    def common_name(self) -> Optional[str]:
        for attr in self.leaf.subject:
            if attr.oid == NameOID.COMMON_NAME:
                return attr.value
        return None

    @property
    def dns_names(self) -> List[str]:
        san = self._subject_alt_names()
        if san is None:
            return []
        return san.get_values_for_type(x509.DNSName)

    @property
    def ip_addresses(self) -> List[IPAddress]:
        san = self._subject_alt_names()
        if san is None:
            return []
        return san.get_values_for_type(x509.IPAddress)

    @property
    def not_valid_after(self) -> datetime:
        return self.leaf.not_valid_after_utc

    def _subject_alt_names(self) -> Optional[x509.SubjectAlternativeName]:
        try:
            return self.leaf.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            return None

    def new_context(self) -> ssl.SSLContext:
        """
        Create a fresh server context presenting this certificate.

        load_cert_chain only accepts file paths, so the key pair is written
        to a private temporary directory for the duration of the call.
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)

        cert_pem = b"".join(cert.public_bytes(serialization.Encoding.PEM) for cert in self._chain)
        key_pem = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

        with tempfile.TemporaryDirectory() as temp_dir:
            cert_file = os.path.join(temp_dir, "cert.pem")
            key_file = os.path.join(temp_dir, "key.pem")
            with open(cert_file, 'wb') as f:
                f.write(cert_pem)
            with open(key_file, 'wb') as f:
                f.write(key_pem)

            try:
                context.load_cert_chain(cert_file, key_file)
            except ssl.SSLError as e:
                raise LoadError(f"ssl module rejected key pair: {e}") from e

        return context

    def __eq__(self, other):
        if not isinstance(other, Certificate):
            return NotImplemented
        return self.der_chain == other.der_chain

    def __hash__(self):
        return hash(self.fingerprint)

    def __repr__(self):
        return f"Certificate(subject={self.leaf.subject.rfc4514_string()!r}, fingerprint={self.fingerprint!r})"


def load_key_pair(cert_path: str, key_path: str, password: Optional[bytes] = None) -> Certificate:
    """
    Load a certificate chain and private key from PEM files.

    Args:
        cert_path: Path to the PEM certificate chain, leaf first
        key_path: Path to the PEM private key
        password: Password for an encrypted private key

    Returns:
        The loaded Certificate

    Raises:
        LoadError: If either file is missing, unreadable or malformed, or the
            key does not belong to the certificate
    """
    try:
        with open(cert_path, 'rb') as f:
            cert_pem = f.read()
        with open(key_path, 'rb') as f:
            key_pem = f.read()
    except OSError as e:
        raise LoadError(f"failed to read key pair: {e}", cert_path, key_path) from e

    try:
        certificate = Certificate.from_pem(cert_pem, key_pem, password=password)
    except LoadError as e:
        raise LoadError(f"{cert_path}, {key_path}: {e}", cert_path, key_path) from e

    logger.debug(f"Loaded certificate {certificate.fingerprint} from {cert_path}")
    return certificate


def _public_key_bytes(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
