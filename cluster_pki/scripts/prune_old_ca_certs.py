#!/usr/bin/env python3
"""Remove superseded cluster CA certificates once the trust overlap period is over."""

import argparse
import sys

from cluster_pki.lib.cluster_ca import ClusterCa
from cluster_pki.lib.config import CaConfig, CaNaming
from cluster_pki.lib.logging_config import LOGGER
from cluster_pki.lib.models import PruneResult
from cluster_pki.lib.ssm_client import SSMClient

PROJECT_NAME = "cluster-pki"


def prune_old_ca_certs(
    cluster_name: str,
    ssm_client: SSMClient,
    config: CaConfig,
    project_name: str = PROJECT_NAME,
    dry_run: bool = False,
) -> PruneResult:
    """Delete old CA certificate entries of a self-managed cluster CA from SSM.

    Args:
        cluster_name: Cluster name
        ssm_client: SSM client instance
        config: CA configuration; generate_ca=False marks a user supplied CA
        project_name: Project name for SSM paths
        dry_run: If True, don't write to AWS

    Returns:
        PruneResult with the removed entry names
    """
    naming = CaNaming.cluster_ca()

    if not config.generate_ca:
        LOGGER.info("%s is provided by the user, leaving it untouched", naming.display_name)
        return PruneResult(removed_entries=[], skipped_user_supplied_ca=True)

    cert_data, key_data = ssm_client.get_cluster_ca(project_name, cluster_name, naming.prefix)
    ca = ClusterCa(config, naming, cluster_name, cert_data, key_data, reconciliation=cluster_name)

    removed = ca.maybe_delete_old_certs()
    if not removed:
        LOGGER.info("No old CA certificates to remove")
    elif not dry_run:
        missing = ssm_client.delete_ca_cert_entries(
            project_name, cluster_name, removed, naming.prefix
        )
        if missing:
            LOGGER.warning("Old CA certificates already gone from SSM: %s", missing)

    return PruneResult(removed_entries=removed, skipped_user_supplied_ca=False)


def main() -> int:
    """Run old CA certificate pruning.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Remove superseded cluster CA certificates")
    parser.add_argument("--cluster", required=True, help="Cluster name")
    parser.add_argument(
        "--user-supplied-ca",
        action="store_true",
        help="The cluster CA is provided by the user and must not be modified",
    )
    parser.add_argument(
        "--project-name",
        default=PROJECT_NAME,
        help=f"Project name for SSM paths (default: {PROJECT_NAME})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview removal without making AWS changes",
    )
    args = parser.parse_args()

    try:
        ssm_client = SSMClient()
        config = CaConfig(generate_ca=not args.user_supplied_ca)

        if args.dry_run:
            LOGGER.info("DRY RUN - no AWS changes will be made")

        result = prune_old_ca_certs(
            cluster_name=args.cluster,
            ssm_client=ssm_client,
            config=config,
            project_name=args.project_name,
            dry_run=args.dry_run,
        )

        LOGGER.info(
            "Removed %d old CA certificates: %s",
            len(result.removed_entries),
            result.removed_entries,
        )
        return 0

    except Exception as e:
        LOGGER.error("Pruning old CA certificates failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
