"""Node certificate reconciliation: reuse, renew or issue one certificate per node."""

from collections.abc import Iterable, Mapping

from .cert_utils import extract_subject_alt_names
from .cluster_ca import TrustAnchor
from .logging_config import LOGGER, reconciliation_extra
from .models import CertAndKey, NodeRef, RegenerationReason, RenewalType, Subject
from .subjects import SubjectFn, broker_subject_fn, cruise_control_subject_fn


def cert_subject_changed(
    cert_and_key: CertAndKey,
    desired_subject: Subject,
    pod_name: str,
    reconciliation: str | None = None,
) -> bool:
    """Check whether the SANs of an issued certificate differ from the desired ones.

    An unreadable certificate always counts as changed.

    Args:
        cert_and_key: Currently stored certificate
        desired_subject: Subject computed for this reconcile
        pod_name: Pod owning the certificate (log messages only)
        reconciliation: Optional marker for log lines

    Returns:
        True if the SAN sets are different, False otherwise
    """
    extra = reconciliation_extra(reconciliation)
    desired = desired_subject.subject_alt_names()
    current = extract_subject_alt_names(cert_and_key.cert)

    if current.matches(desired):
        LOGGER.debug(
            "Alternate subjects match. No need to refresh cert for pod %s.", pod_name, extra=extra
        )
        return False

    LOGGER.info("Alternate subjects for pod %s differ", pod_name, extra=extra)
    LOGGER.info(
        "Current alternate subjects: %s",
        sorted(current.names) if current.parsed else "<unparsable certificate>",
        extra=extra,
    )
    LOGGER.info("Desired alternate subjects: %s", sorted(desired), extra=extra)
    return True


def regeneration_reasons(
    ca: TrustAnchor,
    cert_and_key: CertAndKey,
    desired_subject: Subject,
    pod_name: str,
    maintenance_window_satisfied: bool,
    reconciliation: str | None = None,
) -> list[RegenerationReason]:
    """Every reason an existing node certificate has to be replaced.

    Expiry only counts while the maintenance window allows disruptive changes. A
    certificate signed by anything but the current CA certificate is always replaced.
    """
    reasons: list[RegenerationReason] = []

    if cert_subject_changed(cert_and_key, desired_subject, pod_name, reconciliation):
        reasons.append(RegenerationReason.DNS_NAMES_CHANGED)

    if ca.is_expiring(cert_and_key.cert) and maintenance_window_satisfied:
        reasons.append(RegenerationReason.EXPIRING)

    if not ca.is_issued_by_current_ca(cert_and_key.cert):
        reasons.append(RegenerationReason.ISSUER_CHANGED)

    if ca.renewal_type is RenewalType.CREATE:
        reasons.append(RegenerationReason.CERTIFICATE_ADDED)

    return reasons


def maybe_copy_or_generate_certs(
    ca: TrustAnchor,
    nodes: Iterable[NodeRef],
    subject_fn: SubjectFn,
    existing_certificates: Mapping[str, CertAndKey] | None,
    maintenance_window_satisfied: bool,
    reconciliation: str | None = None,
) -> dict[str, CertAndKey]:
    """Build the certificate map for a node set.

    Existing certificates are reused unchanged unless the CA was renewed or a
    regeneration reason applies; nodes without a certificate get a new one.
    Signing errors propagate and no partial map is returned.

    Args:
        ca: Trust anchor providing renewal state, expiry check and signing
        nodes: Nodes that need a certificate
        subject_fn: Computes the desired subject for a node
        existing_certificates: Stored certificates by pod name (or None)
        maintenance_window_satisfied: Whether disruptive changes are allowed now
        reconciliation: Optional marker for log lines

    Returns:
        Certificates by pod name, one entry per node
    """
    extra = reconciliation_extra(reconciliation)
    existing = existing_certificates or {}
    certs: dict[str, CertAndKey] = {}

    for node in nodes:
        pod_name = node.pod_name
        subject = subject_fn(node)
        cert_and_key = existing.get(pod_name)

        if not ca.cert_renewed() and cert_and_key is not None:
            LOGGER.debug("Certificate for node %s already exists", node, extra=extra)

            reasons = regeneration_reasons(
                ca, cert_and_key, subject, pod_name, maintenance_window_satisfied, reconciliation
            )

            if reasons:
                LOGGER.info(
                    "Certificate for pod %s need to be regenerated because: %s",
                    pod_name,
                    ", ".join(reason.value for reason in reasons),
                    extra=extra,
                )
                certs[pod_name] = ca.generate_signed_cert(subject)
            else:
                certs[pod_name] = cert_and_key
        else:
            LOGGER.debug("Generating new certificate for node %s", node, extra=extra)
            certs[pod_name] = ca.generate_signed_cert(subject)

    return certs


def generate_broker_certs(
    ca: TrustAnchor,
    namespace: str,
    cluster_name: str,
    existing_certificates: Mapping[str, CertAndKey] | None,
    nodes: Iterable[NodeRef],
    external_bootstrap_addresses: Iterable[str] | None,
    external_addresses: Mapping[int, Iterable[str]] | None,
    maintenance_window_satisfied: bool,
    reconciliation: str | None = None,
    cluster_domain: str | None = None,
) -> dict[str, CertAndKey]:
    """Reuse, renew or generate the broker and controller node certificates."""
    subject_fn = broker_subject_fn(
        namespace,
        cluster_name,
        external_bootstrap_addresses,
        external_addresses,
        cluster_domain,
    )

    LOGGER.debug(
        "%s: Reconciling kafka broker certificates", ca, extra=reconciliation_extra(reconciliation)
    )
    return maybe_copy_or_generate_certs(
        ca, nodes, subject_fn, existing_certificates, maintenance_window_satisfied, reconciliation
    )


def generate_cruise_control_certs(
    ca: TrustAnchor,
    namespace: str,
    cluster_name: str,
    existing_certificates: Mapping[str, CertAndKey] | None,
    nodes: Iterable[NodeRef],
    maintenance_window_satisfied: bool,
    reconciliation: str | None = None,
    cluster_domain: str | None = None,
) -> dict[str, CertAndKey]:
    """Reuse, renew or generate the Cruise Control certificate."""
    subject_fn = cruise_control_subject_fn(namespace, cluster_name, cluster_domain)

    extra = reconciliation_extra(reconciliation)
    LOGGER.debug("%s: Reconciling Cruise Control certificates", ca, extra=extra)
    return maybe_copy_or_generate_certs(
        ca, nodes, subject_fn, existing_certificates, maintenance_window_satisfied, reconciliation
    )
