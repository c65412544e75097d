#!/usr/bin/env python3
"""Reconcile node certificates: reuse, renew or issue one certificate per node."""

import argparse
import sys
from pathlib import Path

from cluster_pki.lib.cluster_ca import CA_CERT_ENTRY, ClusterCa
from cluster_pki.lib.config import CaConfig, CaNaming
from cluster_pki.lib.logging_config import LOGGER
from cluster_pki.lib.models import NodeRef, ReconcileResult, RenewalType
from cluster_pki.lib.reconciler import generate_broker_certs
from cluster_pki.lib.ssm_client import SSMClient

PROJECT_NAME = "cluster-pki"
CA_ACTIONS = ["none", "renew-cert", "replace-key"]


def parse_node(value: str) -> NodeRef:
    """Parse ``<id>:<pod name>:<roles>``, roles being a comma list of broker/controller."""
    try:
        node_id, pod_name, roles = value.split(":", 2)
        role_set = {role.strip() for role in roles.split(",") if role.strip()}
        if not role_set or not role_set <= {"broker", "controller"}:
            raise ValueError(f"unknown roles {roles!r}")
        return NodeRef(
            node_id=int(node_id),
            pod_name=pod_name,
            broker="broker" in role_set,
            controller="controller" in role_set,
        )
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid node {value!r}: {e}") from e


def parse_external_address(value: str) -> tuple[int, str]:
    """Parse ``<node id>=<address>``."""
    node_id, sep, address = value.partition("=")
    if not sep or not address:
        raise argparse.ArgumentTypeError(f"invalid external address {value!r}")
    try:
        return int(node_id), address
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid node id in {value!r}") from e


def reconcile_node_certs(
    cluster_name: str,
    namespace: str,
    nodes: list[NodeRef],
    ssm_client: SSMClient,
    config: CaConfig,
    output_dir: Path,
    project_name: str = PROJECT_NAME,
    external_bootstrap_addresses: list[str] | None = None,
    external_addresses: dict[int, set[str]] | None = None,
    maintenance_window_open: bool = False,
    ca_action: str = "none",
    dry_run: bool = False,
) -> ReconcileResult:
    """Reconcile the node certificates of a cluster.

    1. Fetch the cluster CA and the stored node certificates from SSM
    2. Renew the CA certificate or replace its key if requested
    3. Reuse, renew or issue a certificate for every node
    4. Store the CA (if changed), then replace the stored certificate map in SSM
    5. Write artifacts for audit

    Nothing is written to SSM when reconciliation fails. If storing the node
    certificates fails after the CA was stored, the next run reissues every
    certificate the stored CA did not sign.

    Args:
        cluster_name: Cluster name
        namespace: Namespace the cluster runs in
        nodes: Nodes that need a certificate
        ssm_client: SSM client instance
        config: CA configuration
        output_dir: Directory for output artifacts
        project_name: Project name for SSM paths
        external_bootstrap_addresses: External bootstrap addresses for broker SANs
        external_addresses: Per node external addresses for broker SANs
        maintenance_window_open: Whether expiring certificates may be replaced now
        ca_action: One of CA_ACTIONS
        dry_run: If True, don't write to AWS

    Returns:
        ReconcileResult with reused and issued pod names
    """
    reconciliation = f"{namespace}/{cluster_name}"
    naming = CaNaming.cluster_ca()

    cert_data, key_data = ssm_client.get_cluster_ca(project_name, cluster_name, naming.prefix)
    ca = ClusterCa(config, naming, cluster_name, cert_data, key_data, reconciliation)
    LOGGER.info("Fetched %s from SSM", naming.display_name)

    if ca_action == "renew-cert":
        ca.renew_certificate()
    elif ca_action == "replace-key":
        ca.replace_key()

    existing = ssm_client.get_node_certificates(project_name, cluster_name)
    LOGGER.info("Found %d stored node certificates", len(existing))

    certs = generate_broker_certs(
        ca,
        namespace,
        cluster_name,
        existing,
        nodes,
        external_bootstrap_addresses,
        external_addresses,
        maintenance_window_open,
        reconciliation,
    )

    reused = sorted(pod for pod, cert in certs.items() if existing.get(pod) is cert)
    issued = sorted(pod for pod in certs if pod not in reused)

    if not dry_run:
        if ca.renewal_type is not RenewalType.NOOP:
            ssm_client.put_cluster_ca(
                project_name, cluster_name, ca.ca_cert_data, ca.ca_key_data, naming.prefix
            )
            LOGGER.info("Stored updated %s in SSM", naming.display_name)
        removed = ssm_client.put_node_certificates(project_name, cluster_name, certs)
        if removed:
            LOGGER.info("Removed %d stale node certificate parameters from SSM", len(removed))

    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / CA_CERT_ENTRY).write_bytes(ca.ca_cert_data[CA_CERT_ENTRY])
    for pod_name in issued:
        pod_dir = output_dir / pod_name
        pod_dir.mkdir(parents=True, exist_ok=True)
        (pod_dir / f"{pod_name}.crt").write_bytes(certs[pod_name].cert)
        (pod_dir / f"{pod_name}.key").write_bytes(certs[pod_name].key)

    return ReconcileResult(reused=reused, issued=issued, renewal_type=ca.renewal_type)


def main() -> int:
    """Run node certificate reconciliation.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Reconcile node certificates of a cluster against its cluster CA"
    )
    parser.add_argument("--cluster", required=True, help="Cluster name")
    parser.add_argument("--namespace", required=True, help="Cluster namespace")
    parser.add_argument(
        "--node",
        type=parse_node,
        action="append",
        default=[],
        dest="nodes",
        help="Node as <id>:<pod name>:<broker,controller> (repeatable)",
    )
    parser.add_argument(
        "--external-bootstrap-address",
        action="append",
        default=[],
        dest="external_bootstrap_addresses",
        help="External bootstrap address, DNS name or IP (repeatable)",
    )
    parser.add_argument(
        "--external-address",
        type=parse_external_address,
        action="append",
        default=[],
        dest="external_addresses",
        help="Per node external address as <node id>=<address> (repeatable)",
    )
    parser.add_argument(
        "--maintenance-window-open",
        action="store_true",
        help="Allow replacing expiring certificates (rolls the affected pods)",
    )
    parser.add_argument(
        "--ca-action",
        choices=CA_ACTIONS,
        default="none",
        help="Renew the CA certificate or replace the CA key before reconciling",
    )
    parser.add_argument(
        "--project-name",
        default=PROJECT_NAME,
        help=f"Project name for SSM paths (default: {PROJECT_NAME})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Output directory for artifacts (default: cluster_pki/output/{cluster}/nodes)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview reconciliation without making AWS changes",
    )
    args = parser.parse_args()

    if not args.output_dir:
        args.output_dir = Path(f"cluster_pki/output/{args.cluster}/nodes")

    external_addresses: dict[int, set[str]] = {}
    for node_id, address in args.external_addresses:
        external_addresses.setdefault(node_id, set()).add(address)

    try:
        ssm_client = SSMClient()
        config = CaConfig()

        if args.dry_run:
            LOGGER.info("DRY RUN - no AWS changes will be made")

        result = reconcile_node_certs(
            cluster_name=args.cluster,
            namespace=args.namespace,
            nodes=args.nodes,
            ssm_client=ssm_client,
            config=config,
            output_dir=args.output_dir,
            project_name=args.project_name,
            external_bootstrap_addresses=args.external_bootstrap_addresses,
            external_addresses=external_addresses,
            maintenance_window_open=args.maintenance_window_open,
            ca_action=args.ca_action,
            dry_run=args.dry_run,
        )

        LOGGER.info("Node certificate reconciliation complete:")
        LOGGER.info("  Reused: %d", len(result.reused))
        LOGGER.info("  Issued: %d %s", len(result.issued), result.issued)
        LOGGER.info("  CA renewal: %s", result.renewal_type.value)
        return 0

    except Exception as e:
        LOGGER.error("Node certificate reconciliation failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
