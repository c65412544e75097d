"""Value types shared by the node certificate reconciliation engine."""

import enum
import ipaddress
from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class NodeRef:
    """One cluster member.

    ``pod_name`` is the stable identity used as the certificate map key.
    Controller-only nodes have ``broker=False``. ``controller`` is informational:
    certificate subjects depend on ``broker`` only.
    """

    node_id: int
    pod_name: str
    broker: bool
    controller: bool = False


@dataclass(frozen=True)
class Subject:
    """Desired certificate identity: CN plus DNS and IP subject alternative names."""

    common_name: str
    organization_name: str | None = None
    dns_names: frozenset[str] = field(default_factory=frozenset)
    ip_addresses: frozenset[str] = field(default_factory=frozenset)

    @staticmethod
    def builder() -> "SubjectBuilder":
        return SubjectBuilder()

    def subject_alt_names(self) -> frozenset[str]:
        """Return DNS names and IP addresses combined into one unordered set."""
        return self.dns_names | self.ip_addresses

    def has_subject_alt_names(self) -> bool:
        return bool(self.dns_names or self.ip_addresses)


def is_valid_ip_address(address: str) -> bool:
    """Return True when address is an IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


class SubjectBuilder:
    """Mutable accumulator for a Subject."""

    def __init__(self) -> None:
        self._common_name: str | None = None
        self._organization_name: str | None = None
        self._dns_names: set[str] = set()
        self._ip_addresses: set[str] = set()

    def with_common_name(self, common_name: str) -> "SubjectBuilder":
        self._common_name = common_name
        return self

    def with_organization_name(self, organization_name: str) -> "SubjectBuilder":
        self._organization_name = organization_name
        return self

    def add_dns_name(self, dns_name: str) -> "SubjectBuilder":
        self._dns_names.add(dns_name)
        return self

    def add_dns_names(self, dns_names: Iterable[str]) -> "SubjectBuilder":
        self._dns_names.update(dns_names)
        return self

    def add_ip_address(self, ip_address: str) -> "SubjectBuilder":
        # Canonical form, as read back from an issued certificate
        self._ip_addresses.add(str(ipaddress.ip_address(ip_address)))
        return self

    def add_address(self, address: str) -> "SubjectBuilder":
        """Add an address as IP SAN if it is an IP literal, DNS SAN otherwise."""
        if is_valid_ip_address(address):
            return self.add_ip_address(address)
        return self.add_dns_name(address)

    def build(self) -> Subject:
        if not self._common_name:
            raise ValueError("subject requires a common name")
        return Subject(
            common_name=self._common_name,
            organization_name=self._organization_name,
            dns_names=frozenset(self._dns_names),
            ip_addresses=frozenset(self._ip_addresses),
        )


@dataclass(frozen=True)
class CertAndKey:
    """Issued node identity: PEM key, PEM certificate and optional PKCS#12 keystore."""

    key: bytes
    cert: bytes
    keystore: bytes | None = None
    keystore_password: str | None = None


class RenewalType(enum.Enum):
    """Why, or whether, the CA signing material changed in this reconcile."""

    NOOP = "noop"
    POSTPONED = "postponed"
    CREATE = "create"
    RENEW_CERT = "renew-cert"
    REPLACE_KEY = "replace-key"


class RegenerationReason(enum.Enum):
    """Reason an existing node certificate is replaced."""

    DNS_NAMES_CHANGED = "DNS names changed"
    EXPIRING = "certificate is expiring"
    ISSUER_CHANGED = "certificate is not signed by the current CA"
    CERTIFICATE_ADDED = "certificate added"


@dataclass(frozen=True)
class SanParseResult:
    """Outcome of reading the SAN extension of a stored certificate.

    ``names`` is only meaningful when ``parsed`` is True.
    """

    parsed: bool
    names: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, names: Iterable[str]) -> "SanParseResult":
        return cls(parsed=True, names=frozenset(names))

    @classmethod
    def unparsable(cls) -> "SanParseResult":
        return cls(parsed=False)

    def matches(self, desired: frozenset[str]) -> bool:
        """True only for a parsed SAN set equal to ``desired``."""
        return self.parsed and self.names == desired


@dataclass
class ReconcileResult:
    """Result from a node certificate reconciliation.

    Pod names are sorted; every reconciled pod is in exactly one list.
    """

    reused: list[str]
    issued: list[str]
    renewal_type: RenewalType


@dataclass
class PruneResult:
    """Result from removing superseded CA certificates."""

    removed_entries: list[str]
    skipped_user_supplied_ca: bool
