"""Certificate utility functions for key generation, serialization, and SAN extraction."""

import secrets
import uuid
from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import pkcs12

from .logging_config import LOGGER
from .models import SanParseResult

KEYSTORE_PASSWORD_LENGTH = 32


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    Returns:
        Integer serial number for x509.CertificateBuilder.serial_number()
    """
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def certificate_not_after(pem_data: bytes) -> datetime:
    """Return the expiry (UTC) of a PEM certificate."""
    return deserialize_certificate(pem_data).not_valid_after_utc


def generate_keystore_password() -> str:
    """Random password protecting a node's PKCS#12 keystore."""
    return secrets.token_urlsafe(KEYSTORE_PASSWORD_LENGTH)


def create_pkcs12_keystore(
    alias: str, key: RSAPrivateKey, cert: x509.Certificate, password: str
) -> bytes:
    """Package key and certificate into a password protected PKCS#12 keystore."""
    return pkcs12.serialize_key_and_certificates(
        name=alias.encode("utf-8"),
        key=key,
        cert=cert,
        cas=None,
        encryption_algorithm=serialization.BestAvailableEncryption(password.encode("utf-8")),
    )


def extract_subject_alt_names(pem_data: bytes) -> SanParseResult:
    """Read the string valued subject alternative names of a PEM certificate.

    DNS names, IP addresses (in string form), URIs and e-mail names are flattened
    into one set. A certificate without the SAN extension yields an empty set.

    Returns:
        SanParseResult, unparsable when the certificate or its extension is malformed
    """
    try:
        cert = deserialize_certificate(pem_data)
        try:
            sans = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            return SanParseResult.of([])

        names: set[str] = set(sans.get_values_for_type(x509.DNSName))
        names.update(str(ip) for ip in sans.get_values_for_type(x509.IPAddress))
        names.update(sans.get_values_for_type(x509.UniformResourceIdentifier))
        names.update(sans.get_values_for_type(x509.RFC822Name))
        return SanParseResult.of(names)
    except Exception as e:
        LOGGER.debug("Failed to parse existing certificate: %s", e)
        return SanParseResult.unparsable()


def validate_certificate_chain(cert: x509.Certificate, issuer_cert: x509.Certificate) -> bool:
    """Verify that cert was signed by issuer_cert.

    Returns True if the signature is valid, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer_cert)
        return True
    except Exception:
        return False


def extract_csr_subject(csr: x509.CertificateSigningRequest) -> x509.Name:
    """Extract subject DN from CSR."""
    return csr.subject


def extract_csr_public_key(
    csr: x509.CertificateSigningRequest,
) -> rsa.RSAPublicKey:
    """Extract public key from CSR.

    Raises:
        ValueError: If public key is not RSA type
    """
    public_key = csr.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError("CSR public key must be RSA type")
    return public_key


def extract_csr_subject_alt_names(
    csr: x509.CertificateSigningRequest,
) -> x509.SubjectAlternativeName | None:
    """Return the SAN extension requested in a CSR, if any."""
    try:
        return csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return None


def validate_csr_signature(csr: x509.CertificateSigningRequest) -> bool:
    """Verify CSR self-signature to prove private key possession.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        return csr.is_signature_valid
    except Exception:
        return False
