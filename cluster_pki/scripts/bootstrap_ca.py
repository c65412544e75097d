#!/usr/bin/env python3
"""Bootstrap a self-managed cluster CA and store it in SSM."""

import argparse
import sys
from pathlib import Path

from cluster_pki.lib.cert_utils import deserialize_certificate, get_certificate_serial_hex
from cluster_pki.lib.cluster_ca import CA_CERT_ENTRY, CA_KEY_ENTRY, ClusterCa
from cluster_pki.lib.config import CaConfig, CaNaming
from cluster_pki.lib.logging_config import LOGGER
from cluster_pki.lib.ssm_client import SSMClient

PROJECT_NAME = "cluster-pki"


def bootstrap_ca(
    cluster_name: str,
    config: CaConfig,
    output_dir: Path,
    ssm_client: SSMClient | None,
    project_name: str = PROJECT_NAME,
) -> ClusterCa:
    """Generate the cluster CA, write it to output_dir and store it in SSM.

    Args:
        cluster_name: Cluster the CA belongs to
        config: CA configuration
        output_dir: Directory for ca.crt and ca.key
        ssm_client: SSM client, or None for a dry run
        project_name: Project name for SSM paths

    Returns:
        The generated ClusterCa
    """
    ca = ClusterCa(config, CaNaming.cluster_ca(), cluster_name)
    ca.generate()

    ca_dir = output_dir / ca.naming.prefix
    ca_dir.mkdir(parents=True, exist_ok=True)
    (ca_dir / CA_CERT_ENTRY).write_bytes(ca.ca_cert_data[CA_CERT_ENTRY])
    (ca_dir / CA_KEY_ENTRY).write_bytes(ca.ca_key_data[CA_KEY_ENTRY])

    if ssm_client is not None:
        ssm_client.put_cluster_ca(
            project_name, cluster_name, ca.ca_cert_data, ca.ca_key_data, ca.naming.prefix
        )
        LOGGER.info("Stored %s for %s in SSM", ca.naming.display_name, cluster_name)

    return ca


def main() -> int:
    """Bootstrap the cluster CA.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Bootstrap cluster CA")
    parser.add_argument("--cluster", required=True, help="Cluster name")
    parser.add_argument(
        "--project-name",
        default=PROJECT_NAME,
        help=f"Project name for SSM paths (default: {PROJECT_NAME})",
    )
    parser.add_argument(
        "--validity-days",
        type=int,
        default=CaConfig.validity_days,
        help=f"CA and node certificate validity (default: {CaConfig.validity_days})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("cluster_pki/output"),
        help="Output directory for CA artifacts (default: cluster_pki/output)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate artifacts locally without writing to SSM",
    )
    args = parser.parse_args()

    try:
        config = CaConfig(validity_days=args.validity_days)
        ssm_client = None if args.dry_run else SSMClient()

        if args.dry_run:
            LOGGER.info("DRY RUN - no AWS changes will be made")

        LOGGER.info("Bootstrapping cluster CA for %s...", args.cluster)
        ca = bootstrap_ca(
            cluster_name=args.cluster,
            config=config,
            output_dir=args.output_dir,
            ssm_client=ssm_client,
            project_name=args.project_name,
        )

        ca_cert = deserialize_certificate(ca.ca_cert_data[CA_CERT_ENTRY])
        LOGGER.info("Cluster CA created:")
        LOGGER.info("  Serial: %s", get_certificate_serial_hex(ca_cert))
        LOGGER.info("  Expires: %s", ca_cert.not_valid_after_utc.isoformat())
        LOGGER.info("Bootstrap complete. Next: run reconcile_node_certs.py")
        return 0

    except Exception as e:
        LOGGER.error("Bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
