"""
Handshake-time certificate selection.

``HandshakeInfo`` carries what a client advertised in its ClientHello and
``supports_certificate`` decides whether a given certificate can be presented
to it. ``sni_callback`` and ``create_server_context`` plug a store into the
standard library ``ssl`` module.
"""

import ssl
import ipaddress
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from cryptography.hazmat.primitives.asymmetric import rsa, ec, ed25519, ed448

from .certificate import Certificate
from .exceptions import CertificateStoreError, SelectionError

logger = logging.getLogger("reloadable_certs.handshake")


@dataclass(frozen=True)
class HandshakeInfo:
    """
    Capabilities advertised by a client in its ClientHello.

    Empty tuples mean the client did not advertise the extension, in which
    case it places no constraint on the certificate.
    """

    server_name: Optional[str] = None
    signature_schemes: Tuple[str, ...] = ()
    supported_curves: Tuple[str, ...] = ()


def supports_certificate(info: HandshakeInfo, certificate: Certificate) -> bool:
    """
    Check whether a certificate can be presented to a client.

    Args:
        info: Client capabilities
        certificate: Candidate certificate

    Returns:
        True if the certificate matches the requested server name and can
        sign with one of the advertised schemes and curves

    Raises:
        SelectionError: If the certificate's key type is not usable for TLS
    """
    key = certificate.private_key

    if info.server_name and not _matches_server_name(info.server_name, certificate):
        return False

    if info.signature_schemes and not any(_scheme_fits_key(s, key) for s in info.signature_schemes):
        return False

    if info.supported_curves and isinstance(key, ec.EllipticCurvePrivateKey):
        if key.curve.name not in {c.lower() for c in info.supported_curves}:
            return False

    return True


def _matches_server_name(server_name: str, certificate: Certificate) -> bool:
    name = server_name.rstrip('.').lower()

    try:
        address = ipaddress.ip_address(name)
    except ValueError:
        address = None

    if address is not None:
        return address in certificate.ip_addresses

    for pattern in certificate.dns_names:
        if _match_hostname(pattern.rstrip('.').lower(), name):
            return True
    return False


def _match_hostname(pattern: str, name: str) -> bool:
    if pattern == name:
        return True

    # Only a single leftmost wildcard label is allowed
    if not pattern.startswith("*."):
        return False
    pattern_labels = pattern.split('.')
    name_labels = name.split('.')
    if len(pattern_labels) != len(name_labels) or not name_labels[0]:
        return False
    return pattern_labels[1:] == name_labels[1:]


def _scheme_fits_key(scheme: str, key) -> bool:
    scheme = scheme.lower()

    if isinstance(key, rsa.RSAPrivateKey):
        return scheme.startswith("rsa_pkcs1_") or scheme.startswith("rsa_pss_rsae_")
    if isinstance(key, ec.EllipticCurvePrivateKey):
        if not scheme.startswith("ecdsa_"):
            return False
        # ecdsa_<curve>_<hash>; the TLS 1.2 style ecdsa_<hash> binds no curve
        parts = scheme.split('_')
        if len(parts) == 2:
            return True
        return len(parts) == 3 and parts[1] == key.curve.name
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return scheme == "ed25519"
    if isinstance(key, ed448.Ed448PrivateKey):
        return scheme == "ed448"

    raise SelectionError(f"unsupported private key type: {type(key).__name__}")


def sni_callback(store) -> Callable:
    """
    Build an ``ssl.SSLContext.sni_callback`` backed by a store.

    The callback swaps the connection over to the context of whichever
    certificate the store selects. If the store raises, only that handshake
    is aborted.

    Args:
        store: Any ``Store`` implementation

    Returns:
        Callback taking (ssl_object, server_name, ssl_context)
    """
    def callback(ssl_object, server_name: Optional[str], ssl_context):
        info = HandshakeInfo(server_name=server_name)
        try:
            certificate = store.get_certificate(info)
        except CertificateStoreError as e:
            logger.error(f"Certificate selection failed for {server_name!r}: {e}")
            return ssl.ALERT_DESCRIPTION_INTERNAL_ERROR

        logger.debug(f"Selected certificate {certificate.fingerprint} for {server_name!r}")
        ssl_object.context = certificate.context
        return None

    return callback


def create_server_context(store) -> ssl.SSLContext:
    """
    Create a server context that selects certificates from a store.

    The returned context is loaded with the store's current default
    certificate and delegates every handshake to ``sni_callback``.

    Raises:
        CertificateStoreError: If the store cannot provide a default certificate
    """
    default = store.get_certificate(HandshakeInfo())
    context = default.new_context()
    context.sni_callback = sni_callback(store)
    return context
