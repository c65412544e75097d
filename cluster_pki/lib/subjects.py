"""Per-service functions computing the desired certificate subject of a node."""

from collections.abc import Callable, Iterable, Mapping

from .models import NodeRef, Subject
from .naming import (
    all_service_dns_names,
    bootstrap_service_name,
    brokers_service_name,
    cruise_control_service_name,
    kafka_component_name,
    pod_dns_name,
    pod_dns_name_without_cluster_domain,
    service_dns_name,
    service_dns_name_without_cluster_domain,
)

ORGANIZATION_NAME = "io.strimzi"

SubjectFn = Callable[[NodeRef], Subject]


def broker_subject_fn(
    namespace: str,
    cluster_name: str,
    external_bootstrap_addresses: Iterable[str] | None = None,
    external_addresses: Mapping[int, Iterable[str]] | None = None,
    cluster_domain: str | None = None,
) -> SubjectFn:
    """Subject function for broker and controller nodes.

    External listener addresses are only added for broker nodes, so changing
    external listeners never rolls controller-only nodes.
    """
    bootstrap_service = bootstrap_service_name(cluster_name)
    brokers_service = brokers_service_name(cluster_name)
    bootstrap_addresses = list(external_bootstrap_addresses or [])
    node_addresses = external_addresses or {}

    def subject_fn(node: NodeRef) -> Subject:
        subject = (
            Subject.builder()
            .with_organization_name(ORGANIZATION_NAME)
            .with_common_name(kafka_component_name(cluster_name))
        )

        subject.add_dns_names(all_service_dns_names(namespace, bootstrap_service, cluster_domain))
        subject.add_dns_names(all_service_dns_names(namespace, brokers_service, cluster_domain))

        subject.add_dns_name(
            pod_dns_name(namespace, brokers_service, node.pod_name, cluster_domain)
        )
        subject.add_dns_name(
            pod_dns_name_without_cluster_domain(namespace, brokers_service, node.pod_name)
        )

        if node.broker:
            for address in bootstrap_addresses:
                subject.add_address(address)

            for address in node_addresses.get(node.node_id) or []:
                subject.add_address(address)

        return subject.build()

    return subject_fn


def cruise_control_subject_fn(
    namespace: str, cluster_name: str, cluster_domain: str | None = None
) -> SubjectFn:
    """Subject function for the Cruise Control service."""
    service = cruise_control_service_name(cluster_name)

    def subject_fn(node: NodeRef) -> Subject:
        return (
            Subject.builder()
            .with_organization_name(ORGANIZATION_NAME)
            .with_common_name(service)
            .add_dns_name(service)
            .add_dns_name(f"{service}.{namespace}")
            .add_dns_name(service_dns_name_without_cluster_domain(namespace, service))
            .add_dns_name(service_dns_name(namespace, service, cluster_domain))
            .add_dns_name("localhost")
            .build()
        )

    return subject_fn
