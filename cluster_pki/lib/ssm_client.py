"""SSM client persisting CA material and node certificates in AWS Parameter Store."""

import base64
from typing import Any

import boto3

from .models import CertAndKey

NODE_KEY = "private-key"
NODE_CERT = "certificate"
NODE_KEYSTORE = "keystore"
NODE_KEYSTORE_PASSWORD = "keystore-password"


class SSMClient:
    """SSM client for the cluster CA stores and the node certificate map.

    Layout under ``/{project}/{cluster}``:
        ``/{ca_prefix}/certs/{entry}``    CA certificate store (String)
        ``/{ca_prefix}/keys/{entry}``     CA key store (SecureString)
        ``/nodes/{pod}/{field}``          node certificates (keys as SecureString)
    """

    def __init__(self, region: str = "eu-west-2") -> None:
        """Initialize SSM client.

        Args:
            region: AWS region for SSM client
        """
        self.client = boto3.client("ssm", region_name=region)

    def _get_parameters_by_path(self, path: str) -> list[dict[str, Any]]:
        """Fetch every parameter below path, following pagination."""
        parameters: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {"Path": path, "Recursive": True, "WithDecryption": True}

        response = self.client.get_parameters_by_path(**kwargs)
        parameters.extend(response.get("Parameters", []))

        while response.get("NextToken"):
            response = self.client.get_parameters_by_path(**kwargs, NextToken=response["NextToken"])
            parameters.extend(response.get("Parameters", []))

        return parameters

    def _delete_parameters(self, names: list[str]) -> list[str]:
        """Delete parameters by full name.

        Returns:
            Names SSM reported as not found
        """
        invalid: list[str] = []

        # delete_parameters accepts at most 10 names per call
        for i in range(0, len(names), 10):
            response = self.client.delete_parameters(Names=names[i : i + 10])
            invalid.extend(response.get("InvalidParameters", []))

        return invalid

    def _get_entries(self, path: str) -> dict[str, bytes]:
        return {
            parameter["Name"][len(path) + 1 :]: parameter["Value"].encode("utf-8")
            for parameter in self._get_parameters_by_path(path)
        }

    def get_cluster_ca(
        self, project_name: str, cluster_name: str, ca_prefix: str = "cluster-ca"
    ) -> tuple[dict[str, bytes], dict[str, bytes]]:
        """Fetch the CA certificate store and key store.

        Args:
            project_name: Project name prefix
            cluster_name: Cluster the CA belongs to
            ca_prefix: CA naming prefix (e.g., 'cluster-ca')

        Returns:
            Tuple of (cert entries, key entries), entry name -> PEM bytes

        Raises:
            ValueError: If no CA certificate is stored
        """
        base = f"/{project_name}/{cluster_name}/{ca_prefix}"
        cert_data = self._get_entries(f"{base}/certs")
        key_data = self._get_entries(f"{base}/keys")

        if not cert_data:
            raise ValueError(f"CA not found in SSM. Path checked: {base}/certs")

        return cert_data, key_data

    def put_cluster_ca(
        self,
        project_name: str,
        cluster_name: str,
        cert_data: dict[str, bytes],
        key_data: dict[str, bytes],
        ca_prefix: str = "cluster-ca",
    ) -> None:
        """Store every CA certificate and key entry, overwriting existing values."""
        base = f"/{project_name}/{cluster_name}/{ca_prefix}"

        for entry, value in key_data.items():
            self.client.put_parameter(
                Name=f"{base}/keys/{entry}",
                Value=value.decode("utf-8"),
                Type="SecureString",
                Overwrite=True,
            )

        for entry, value in cert_data.items():
            self.client.put_parameter(
                Name=f"{base}/certs/{entry}",
                Value=value.decode("utf-8"),
                Type="String",
                Overwrite=True,
            )

    def delete_ca_cert_entries(
        self,
        project_name: str,
        cluster_name: str,
        entry_names: list[str],
        ca_prefix: str = "cluster-ca",
    ) -> list[str]:
        """Delete CA certificate entries.

        Returns:
            Names that were not found in SSM
        """
        if not entry_names:
            return []

        base = f"/{project_name}/{cluster_name}/{ca_prefix}/certs"
        invalid = self._delete_parameters([f"{base}/{entry}" for entry in entry_names])
        return [name[len(base) + 1 :] for name in invalid]

    def get_node_certificates(self, project_name: str, cluster_name: str) -> dict[str, CertAndKey]:
        """Fetch the stored node certificate map.

        Returns:
            Certificates by pod name, empty when nothing is stored yet
        """
        base = f"/{project_name}/{cluster_name}/nodes"
        fields: dict[str, dict[str, str]] = {}

        for parameter in self._get_parameters_by_path(base):
            pod_name, _, field = parameter["Name"][len(base) + 1 :].partition("/")
            fields.setdefault(pod_name, {})[field] = parameter["Value"]

        certs: dict[str, CertAndKey] = {}
        for pod_name, values in fields.items():
            if NODE_KEY not in values or NODE_CERT not in values:
                continue
            keystore = values.get(NODE_KEYSTORE)
            certs[pod_name] = CertAndKey(
                key=values[NODE_KEY].encode("utf-8"),
                cert=values[NODE_CERT].encode("utf-8"),
                keystore=base64.b64decode(keystore) if keystore else None,
                keystore_password=values.get(NODE_KEYSTORE_PASSWORD),
            )

        return certs

    def put_node_certificates(
        self, project_name: str, cluster_name: str, certs: dict[str, CertAndKey]
    ) -> list[str]:
        """Replace the stored node certificate map with ``certs``.

        Parameters under the nodes path that are not part of ``certs`` (pods
        removed from the cluster, fields no longer present) are deleted after
        the new values are written.

        Returns:
            Full names of the deleted parameters
        """
        base = f"/{project_name}/{cluster_name}/nodes"
        stored = [parameter["Name"] for parameter in self._get_parameters_by_path(base)]
        written: set[str] = set()

        for pod_name, cert_and_key in certs.items():
            written.update((f"{base}/{pod_name}/{NODE_KEY}", f"{base}/{pod_name}/{NODE_CERT}"))
            self.client.put_parameter(
                Name=f"{base}/{pod_name}/{NODE_KEY}",
                Value=cert_and_key.key.decode("utf-8"),
                Type="SecureString",
                Overwrite=True,
            )
            self.client.put_parameter(
                Name=f"{base}/{pod_name}/{NODE_CERT}",
                Value=cert_and_key.cert.decode("utf-8"),
                Type="String",
                Overwrite=True,
            )
            if cert_and_key.keystore is not None:
                written.add(f"{base}/{pod_name}/{NODE_KEYSTORE}")
                self.client.put_parameter(
                    Name=f"{base}/{pod_name}/{NODE_KEYSTORE}",
                    Value=base64.b64encode(cert_and_key.keystore).decode("ascii"),
                    Type="SecureString",
                    Tier="Advanced",
                    Overwrite=True,
                )
            if cert_and_key.keystore_password is not None:
                written.add(f"{base}/{pod_name}/{NODE_KEYSTORE_PASSWORD}")
                self.client.put_parameter(
                    Name=f"{base}/{pod_name}/{NODE_KEYSTORE_PASSWORD}",
                    Value=cert_and_key.keystore_password,
                    Type="SecureString",
                    Overwrite=True,
                )

        stale = sorted(name for name in stored if name not in written)
        self._delete_parameters(stale)
        return stale
