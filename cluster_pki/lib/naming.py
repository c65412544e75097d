"""Resource and DNS naming rules for cluster services."""

from .config import cluster_domain as default_cluster_domain


def kafka_component_name(cluster_name: str) -> str:
    return f"{cluster_name}-kafka"


def bootstrap_service_name(cluster_name: str) -> str:
    return f"{cluster_name}-kafka-bootstrap"


def brokers_service_name(cluster_name: str) -> str:
    return f"{cluster_name}-kafka-brokers"


def cruise_control_service_name(cluster_name: str) -> str:
    return f"{cluster_name}-cruise-control"


def service_dns_name_without_cluster_domain(namespace: str, service_name: str) -> str:
    """Return ``<service>.<namespace>.svc``."""
    return f"{service_name}.{namespace}.svc"


def service_dns_name(namespace: str, service_name: str, cluster_domain: str | None = None) -> str:
    """Return ``<service>.<namespace>.svc.<cluster domain>``."""
    domain = cluster_domain or default_cluster_domain()
    return f"{service_dns_name_without_cluster_domain(namespace, service_name)}.{domain}"


def pod_dns_name_without_cluster_domain(namespace: str, service_name: str, pod_name: str) -> str:
    """Return ``<pod>.<service>.<namespace>.svc`` for a pod behind a headless service."""
    return f"{pod_name}.{service_dns_name_without_cluster_domain(namespace, service_name)}"


def pod_dns_name(
    namespace: str, service_name: str, pod_name: str, cluster_domain: str | None = None
) -> str:
    """Return ``<pod>.<service>.<namespace>.svc.<cluster domain>``."""
    return f"{pod_name}.{service_dns_name(namespace, service_name, cluster_domain)}"


def all_service_dns_names(
    namespace: str, service_name: str, cluster_domain: str | None = None
) -> list[str]:
    """Return every name a service is reachable under from inside the cluster.

    Order: short name, namespaced name, ``.svc`` name, fully qualified name.
    """
    return [
        service_name,
        f"{service_name}.{namespace}",
        service_dns_name_without_cluster_domain(namespace, service_name),
        service_dns_name(namespace, service_name, cluster_domain),
    ]
