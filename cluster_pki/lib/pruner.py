"""Removal of superseded CA certificates from the CA certificate store."""

import re
from datetime import datetime, timezone

from .logging_config import LOGGER, reconciliation_extra

# Matches the entries written when the CA key is replaced. Existing stores use
# this exact form, unescaped dot included.
OLD_CA_CERT_PATTERN = re.compile(r"^ca-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}Z.crt$")


def old_ca_cert_entry_name(timestamp: datetime) -> str:
    """Entry name for a CA certificate superseded at ``timestamp`` (UTC)."""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return f"ca-{timestamp:%Y-%m-%dT%H-%M-%S}Z.crt"


def is_old_ca_cert_entry(entry_name: str) -> bool:
    return OLD_CA_CERT_PATTERN.match(entry_name) is not None


def maybe_delete_old_certs(
    ca_cert_data: dict[str, bytes],
    generate_ca: bool,
    reconciliation: str | None = None,
) -> list[str]:
    """Remove every old CA certificate entry from ``ca_cert_data`` in place.

    User supplied CAs are never touched. Callers decide when the trust overlap
    period is over; this function removes matching entries unconditionally.

    Args:
        ca_cert_data: CA certificate store (entry name -> PEM bytes)
        generate_ca: True when the CA is generated and managed by the operator
        reconciliation: Optional marker for log lines

    Returns:
        Names of the removed entries, sorted
    """
    if not generate_ca:
        return []

    removed = sorted(name for name in ca_cert_data if is_old_ca_cert_entry(name))
    for name in removed:
        del ca_cert_data[name]

    if removed:
        LOGGER.info(
            "Old CA certificates removed: %s",
            ", ".join(removed),
            extra=reconciliation_extra(reconciliation),
        )
    return removed
