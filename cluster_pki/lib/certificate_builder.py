"""Certificate builder for X.509 certificate construction."""

import ipaddress
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509 import oid

from .cert_utils import (
    extract_csr_public_key,
    extract_csr_subject,
    extract_csr_subject_alt_names,
    generate_serial_number,
    validate_csr_signature,
)
from .config import DistinguishedName
from .models import Subject


def subject_to_x509_name(subject: Subject) -> x509.Name:
    """Convert a Subject's CN and O to an x509.Name."""
    attributes = []
    if subject.organization_name:
        attributes.append(
            x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, subject.organization_name)
        )
    attributes.append(x509.NameAttribute(oid.NameOID.COMMON_NAME, subject.common_name))
    return x509.Name(attributes)


def subject_to_general_names(subject: Subject) -> list[x509.GeneralName]:
    """Convert a Subject's SANs to general names, sorted for stable output."""
    general_names: list[x509.GeneralName] = [
        x509.DNSName(name) for name in sorted(subject.dns_names)
    ]
    general_names.extend(
        x509.IPAddress(ipaddress.ip_address(address)) for address in sorted(subject.ip_addresses)
    )
    return general_names


class CertificateBuilder:
    """Builds X.509 certificates for the cluster CA and its node certificates."""

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject
            private_key: RSA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=0),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=False,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        )

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_csr(subject: Subject, private_key: RSAPrivateKey) -> x509.CertificateSigningRequest:
        """Build a CSR carrying the subject's CN, O and SANs."""
        builder = x509.CertificateSigningRequestBuilder().subject_name(
            subject_to_x509_name(subject)
        )
        if subject.has_subject_alt_names():
            builder = builder.add_extension(
                x509.SubjectAlternativeName(subject_to_general_names(subject)),
                critical=False,
            )
        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_node_certificate(
        csr: x509.CertificateSigningRequest,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build node certificate from CSR, signed by the cluster CA.

        The SANs requested in the CSR are copied into the certificate. Node
        certificates serve both sides of TLS, so server and client auth are allowed.

        Args:
            csr: Certificate signing request for the node
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            X.509 end-entity certificate signed by the CA

        Raises:
            ValueError: If CSR signature is invalid
        """
        if not validate_csr_signature(csr):
            raise ValueError("CSR signature validation failed")

        subject = extract_csr_subject(csr)
        public_key = extract_csr_public_key(csr)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=False,
            )
            .add_extension(
                x509.ExtendedKeyUsage(
                    [oid.ExtendedKeyUsageOID.SERVER_AUTH, oid.ExtendedKeyUsageOID.CLIENT_AUTH]
                ),
                critical=False,
            )
        )

        sans = extract_csr_subject_alt_names(csr)
        if sans is not None:
            builder = builder.add_extension(sans, critical=False)

        return builder.sign(issuer_key, hashes.SHA256())
