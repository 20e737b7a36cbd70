"""Shared fixtures for testing reloadable certificate stores."""

import os
import ssl
import tempfile
import ipaddress
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa, ec, ed25519
from cryptography.x509.oid import NameOID


def generate_certificate(common_name, dns_names=(), ip_addresses=(), key_type='ec'):
    """Create a self-signed certificate and its private key."""
    if key_type == 'rsa':
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    elif key_type == 'p384':
        key = ec.generate_private_key(ec.SECP384R1())
    elif key_type == 'ed25519':
        key = ed25519.Ed25519PrivateKey.generate()
    else:
        key = ec.generate_private_key(ec.SECP256R1())

    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=30))
    )

    sans = [x509.DNSName(n) for n in dns_names]
    sans += [x509.IPAddress(ipaddress.ip_address(a)) for a in ip_addresses]
    if sans:
        builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)

    algorithm = None if key_type == 'ed25519' else hashes.SHA256()
    return builder.sign(key, algorithm), key


def write_key_pair(directory, name, cert, key, password=None):
    """Write a certificate and key as PEM files, returning their paths."""
    cert_path = os.path.join(directory, f"{name}.pem")
    key_path = os.path.join(directory, f"{name}.key")

    if password:
        encryption = serialization.BestAvailableEncryption(password)
    else:
        encryption = serialization.NoEncryption()

    with open(cert_path, 'wb') as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))
    with open(key_path, 'wb') as f:
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption
        ))
    return cert_path, key_path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for file operations."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def key_pair_factory(temp_dir):
    """
    Return a function creating a key pair on disk.

    The function returns (cert_path, key_path, certificate, private_key).
    """
    def make(name, dns_names=(), ip_addresses=(), key_type='ec', password=None):
        cert, key = generate_certificate(name, dns_names, ip_addresses, key_type)
        cert_path, key_path = write_key_pair(temp_dir, name, cert, key, password)
        return cert_path, key_path, cert, key
    return make


@pytest.fixture
def pair1(key_pair_factory):
    """Key pair for example.com."""
    return key_pair_factory('cert1', dns_names=['example.com', 'www.example.com'])


@pytest.fixture
def pair2(key_pair_factory):
    """Key pair for example.org."""
    return key_pair_factory('cert2', dns_names=['example.org'])


@pytest.fixture
def handshake():
    """
    Return a function performing an in-memory TLS handshake.

    The function returns the DER certificate the server presented.
    """
    def run(server_context, server_name):
        client_context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        client_context.check_hostname = False
        client_context.verify_mode = ssl.CERT_NONE

        client_in, client_out = ssl.MemoryBIO(), ssl.MemoryBIO()
        server_in, server_out = ssl.MemoryBIO(), ssl.MemoryBIO()
        client = client_context.wrap_bio(client_in, client_out, server_hostname=server_name)
        server = server_context.wrap_bio(server_in, server_out, server_side=True)

        client_done = server_done = False
        for _ in range(20):
            if not client_done:
                try:
                    client.do_handshake()
                    client_done = True
                except ssl.SSLWantReadError:
                    pass
            server_in.write(client_out.read())

            if not server_done:
                try:
                    server.do_handshake()
                    server_done = True
                except ssl.SSLWantReadError:
                    pass
            client_in.write(server_out.read())

            if client_done and server_done:
                break

        assert client_done and server_done, "handshake did not complete"
        return client.getpeercert(binary_form=True)
    return run
