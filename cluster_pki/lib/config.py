"""Cluster CA configuration dataclasses."""

import os
from dataclasses import dataclass

from cryptography import x509
from cryptography.x509 import oid

DEFAULT_CLUSTER_DOMAIN = "cluster.local"


def cluster_domain() -> str:
    """Kubernetes cluster DNS domain, overridable with KUBERNETES_SERVICE_DNS_DOMAIN."""
    return os.environ.get("KUBERNETES_SERVICE_DNS_DOMAIN") or DEFAULT_CLUSTER_DOMAIN


@dataclass
class CaConfig:
    """CA validity and renewal settings."""

    validity_days: int = 365
    renewal_days: int = 30
    key_size: int = 2048
    generate_ca: bool = True
    organization: str = "io.strimzi"


@dataclass(frozen=True)
class CaNaming:
    """Naming strategy for one CA kind.

    ``prefix`` is the SSM path segment the CA entries are stored under.
    """

    prefix: str
    display_name: str

    @classmethod
    def cluster_ca(cls) -> "CaNaming":
        return cls(
            prefix="cluster-ca",
            display_name="Cluster CA",
        )

    @classmethod
    def clients_ca(cls) -> "CaNaming":
        return cls(
            prefix="clients-ca",
            display_name="Clients CA",
        )


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name."""

    organization: str
    common_name: str

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        return x509.Name(
            [
                x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization),
                x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name),
            ]
        )
