"""Test fixtures for cluster_pki tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from cluster_pki.lib.cluster_ca import ClusterCa
from cluster_pki.lib.config import CaConfig, CaNaming
from cluster_pki.lib.models import CertAndKey, NodeRef, RenewalType
from cluster_pki.lib.subjects import SubjectFn, broker_subject_fn

NAMESPACE = "kafka"
CLUSTER = "my-cluster"


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Return temporary directory for test output artifacts."""
    return tmp_path


@pytest.fixture
def ca_config() -> CaConfig:
    """Return test CA configuration."""
    return CaConfig(
        validity_days=365,
        renewal_days=30,
        key_size=2048,  # Faster for tests
        generate_ca=True,
    )


@pytest.fixture
def cluster_ca(ca_config: CaConfig) -> ClusterCa:
    """Return a generated cluster CA with a settled (NOOP) renewal state."""
    ca = ClusterCa(
        ca_config, CaNaming.cluster_ca(), CLUSTER, reconciliation=f"{NAMESPACE}/{CLUSTER}"
    )
    ca.generate()
    ca.renewal_type = RenewalType.NOOP
    return ca


@pytest.fixture
def broker_node() -> NodeRef:
    return NodeRef(node_id=0, pod_name=f"{CLUSTER}-broker-0", broker=True)


@pytest.fixture
def controller_node() -> NodeRef:
    return NodeRef(node_id=3, pod_name=f"{CLUSTER}-controller-3", broker=False, controller=True)


@pytest.fixture
def nodes(broker_node: NodeRef, controller_node: NodeRef) -> set[NodeRef]:
    """Two brokers and one controller-only node."""
    return {
        broker_node,
        NodeRef(node_id=1, pod_name=f"{CLUSTER}-broker-1", broker=True, controller=True),
        controller_node,
    }


@pytest.fixture
def subject_fn() -> SubjectFn:
    """Broker subject function with one external bootstrap address."""
    return broker_subject_fn(
        NAMESPACE, CLUSTER, {"kafka.example.com"}, {0: {"broker-0.example.com"}}
    )


@pytest.fixture
def issued_certs(
    cluster_ca: ClusterCa, nodes: set[NodeRef], subject_fn: SubjectFn
) -> dict[str, CertAndKey]:
    """Certificates already issued for every node with the current subjects."""
    return {node.pod_name: cluster_ca.generate_signed_cert(subject_fn(node)) for node in nodes}


class FakeParameterStore:
    """In-memory stand-in for the SSM client calls SSMClient makes.

    Writes to names starting with one of ``fail_prefixes`` raise a throttling error.
    """

    def __init__(self) -> None:
        self.parameters: dict[str, str] = {}
        self.fail_prefixes: tuple[str, ...] = ()

    def put_parameter(
        self, Name: str, Value: str, Type: str, Overwrite: bool = False, Tier: str | None = None
    ) -> dict:
        if Name.startswith(self.fail_prefixes):
            raise ClientError(
                {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
                "PutParameter",
            )
        if Name in self.parameters and not Overwrite:
            raise ClientError(
                {"Error": {"Code": "ParameterAlreadyExists", "Message": Name}}, "PutParameter"
            )
        self.parameters[Name] = Value
        return {"Version": 1}

    def get_parameters_by_path(
        self, Path: str, Recursive: bool, WithDecryption: bool, NextToken: str | None = None
    ) -> dict:
        prefix = Path.rstrip("/") + "/"
        return {
            "Parameters": [
                {"Name": name, "Value": value}
                for name, value in sorted(self.parameters.items())
                if name.startswith(prefix)
            ]
        }

    def delete_parameters(self, Names: list[str]) -> dict:
        assert len(Names) <= 10
        deleted = [name for name in Names if self.parameters.pop(name, None) is not None]
        return {
            "DeletedParameters": deleted,
            "InvalidParameters": [name for name in Names if name not in deleted],
        }

    def names(self, path: str) -> set[str]:
        """Stored names below ``path``."""
        return {name for name in self.parameters if name.startswith(path.rstrip("/") + "/")}


@pytest.fixture
def parameter_store() -> Generator[FakeParameterStore]:
    """Patch boto3 so every SSMClient created in the test talks to one in-memory store."""
    store = FakeParameterStore()
    with patch("cluster_pki.lib.ssm_client.boto3") as mock_boto3:
        mock_boto3.client.return_value = store
        yield store
