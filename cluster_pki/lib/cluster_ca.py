"""Cluster CA: the trust anchor that signs node certificates."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import (
    certificate_not_after,
    create_pkcs12_keystore,
    deserialize_certificate,
    deserialize_private_key,
    generate_keystore_password,
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
    validate_certificate_chain,
)
from .certificate_builder import CertificateBuilder
from .config import CaConfig, CaNaming, DistinguishedName
from .logging_config import LOGGER, reconciliation_extra
from .models import CertAndKey, RenewalType, Subject
from .pruner import maybe_delete_old_certs, old_ca_cert_entry_name

CA_CERT_ENTRY = "ca.crt"
CA_KEY_ENTRY = "ca.key"


class TrustAnchor(Protocol):
    """What the node certificate reconciler needs from a CA."""

    renewal_type: RenewalType

    def cert_renewed(self) -> bool: ...

    def is_expiring(self, certificate: bytes) -> bool: ...

    def is_issued_by_current_ca(self, certificate: bytes) -> bool: ...

    def generate_signed_cert(self, subject: Subject) -> CertAndKey: ...


class ClusterCa:
    """Operator side view of one CA.

    The CA kind (cluster or clients CA) is selected through ``naming``. Deciding
    when to renew or replace the CA is left to the caller; this class only
    carries out the requested change and records it in ``renewal_type``.
    """

    def __init__(
        self,
        config: CaConfig,
        naming: CaNaming,
        cluster_name: str,
        ca_cert_data: dict[str, bytes] | None = None,
        ca_key_data: dict[str, bytes] | None = None,
        reconciliation: str | None = None,
    ) -> None:
        """Initialize the CA from its stored certificate and key entries.

        Args:
            config: Validity, renewal threshold and ownership settings
            naming: Naming strategy for this CA kind
            cluster_name: Name of the cluster the CA belongs to
            ca_cert_data: CA certificate store (entry name -> PEM bytes)
            ca_key_data: CA key store (entry name -> PEM bytes)
            reconciliation: Optional marker for log lines
        """
        self.config = config
        self.naming = naming
        self.cluster_name = cluster_name
        self.ca_cert_data: dict[str, bytes] = dict(ca_cert_data or {})
        self.ca_key_data: dict[str, bytes] = dict(ca_key_data or {})
        self.reconciliation = reconciliation
        self.renewal_type = RenewalType.NOOP
        self.ca_certs_removed = False

    def __str__(self) -> str:
        return self.naming.prefix

    @property
    def generate_ca(self) -> bool:
        return self.config.generate_ca

    @property
    def ca_cert(self) -> bytes | None:
        return self.ca_cert_data.get(CA_CERT_ENTRY)

    @property
    def ca_key(self) -> bytes | None:
        return self.ca_key_data.get(CA_KEY_ENTRY)

    def cert_renewed(self) -> bool:
        """True when every node certificate must be reissued in this reconcile."""
        return self.renewal_type in (RenewalType.RENEW_CERT, RenewalType.REPLACE_KEY)

    def is_expiring(self, certificate: bytes, now: datetime | None = None) -> bool:
        """True when the certificate is inside the renewal period or unreadable."""
        now = now or datetime.now(timezone.utc)
        try:
            not_after = certificate_not_after(certificate)
        except ValueError:
            LOGGER.debug(
                "%s: cannot read certificate expiry, treating as expiring",
                self,
                extra=reconciliation_extra(self.reconciliation),
            )
            return True
        return not_after - timedelta(days=self.config.renewal_days) <= now

    def is_issued_by_current_ca(self, certificate: bytes) -> bool:
        """True when the certificate is signed by the current CA certificate."""
        if self.ca_cert is None:
            return False
        try:
            cert = deserialize_certificate(certificate)
        except ValueError:
            return False
        return validate_certificate_chain(cert, deserialize_certificate(self.ca_cert))

    def generate(self) -> None:
        """Create the first CA key and certificate."""
        self._check_managed("generate")
        key = generate_private_key(self.config.key_size)
        self._store(key, self._build_ca_cert(key))
        self.renewal_type = RenewalType.CREATE
        LOGGER.info(
            "%s: generated CA certificate", self, extra=reconciliation_extra(self.reconciliation)
        )

    def renew_certificate(self) -> None:
        """Reissue the CA certificate with the existing key."""
        self._check_managed("renew")
        key = self._load_key()
        self._store(key, self._build_ca_cert(key))
        self.renewal_type = RenewalType.RENEW_CERT
        LOGGER.info(
            "%s: renewed CA certificate", self, extra=reconciliation_extra(self.reconciliation)
        )

    def replace_key(self, now: datetime | None = None) -> str | None:
        """Replace the CA key, keeping the old certificate for trust overlap.

        Returns:
            Entry name the superseded certificate was stored under, if there was one
        """
        self._check_managed("replace key of")
        now = now or datetime.now(timezone.utc)
        old_entry = None
        if self.ca_cert is not None:
            old_entry = old_ca_cert_entry_name(now)
            self.ca_cert_data[old_entry] = self.ca_cert

        key = generate_private_key(self.config.key_size)
        self._store(key, self._build_ca_cert(key))
        self.renewal_type = RenewalType.REPLACE_KEY
        LOGGER.info(
            "%s: replaced CA key, previous certificate kept as %s",
            self,
            old_entry,
            extra=reconciliation_extra(self.reconciliation),
        )
        return old_entry

    def generate_signed_cert(self, subject: Subject) -> CertAndKey:
        """Issue a new key pair and certificate for ``subject``.

        CSR and key material only live in memory for the duration of the call.

        Raises:
            ValueError: If the CA key or certificate is missing
        """
        issuer_key = self._load_key()
        if self.ca_cert is None:
            raise ValueError(f"{self.naming.display_name} certificate is missing")
        issuer_cert = deserialize_certificate(self.ca_cert)

        key = generate_private_key(self.config.key_size)
        csr = CertificateBuilder.build_csr(subject, key)
        cert = CertificateBuilder.build_node_certificate(
            csr=csr,
            issuer_cert=issuer_cert,
            issuer_key=issuer_key,
            validity_days=self.config.validity_days,
        )

        password = generate_keystore_password()
        return CertAndKey(
            key=serialize_private_key(key),
            cert=serialize_certificate(cert),
            keystore=create_pkcs12_keystore(subject.common_name, key, cert, password),
            keystore_password=password,
        )

    def maybe_delete_old_certs(self) -> list[str]:
        """Drop superseded CA certificates from a self-managed CA's store."""
        removed = maybe_delete_old_certs(
            self.ca_cert_data, self.generate_ca, reconciliation=self.reconciliation
        )
        if removed:
            self.ca_certs_removed = True
        return removed

    def _check_managed(self, action: str) -> None:
        if not self.generate_ca:
            raise RuntimeError(
                f"cannot {action} {self.naming.display_name}: it is provided by the user"
            )

    def _load_key(self) -> RSAPrivateKey:
        if self.ca_key is None:
            raise ValueError(f"{self.naming.display_name} private key is missing")
        return deserialize_private_key(self.ca_key)

    def _build_ca_cert(self, key: RSAPrivateKey) -> bytes:
        dn = DistinguishedName(
            organization=self.config.organization,
            common_name=f"{self.naming.display_name} {self.cluster_name}",
        )
        return serialize_certificate(
            CertificateBuilder.build_ca(dn, key, validity_days=self.config.validity_days)
        )

    def _store(self, key: RSAPrivateKey, cert_pem: bytes) -> None:
        self.ca_key_data[CA_KEY_ENTRY] = serialize_private_key(key)
        self.ca_cert_data[CA_CERT_ENTRY] = cert_pem
