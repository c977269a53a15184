"""Abstract interfaces for iaas-connector backends.

Core logic depends only on these protocols, never on cloud-specific SDKs
like boto3 or openstacksdk. To add a new cloud backend, implement the
gateway protocols and a provider adapter that satisfies CloudProvider.
"""

from __future__ import annotations

from typing import Protocol

from iaas_connector.core.models import (
    Infrastructure,
    Instance,
    KeyPairRecord,
    LaunchTemplate,
    Location,
    NodeRecord,
    Options,
    PublicAddress,
)


class KeyPairGateway(Protocol):
    """Key pair operations, scoped by region."""

    def create_key_pair(self, region: str) -> KeyPairRecord:
        """Create a new key pair in the region. Raises BackendError on failure."""
        ...

    def list_key_pairs(self, region: str, name: str) -> set[str]:
        """Return the names of the key pairs in the region matching ``name``."""
        ...


class ElasticIpGateway(Protocol):
    """Region-scoped public address pool."""

    def list_free_addresses(self, region: str) -> list[PublicAddress]:
        """Addresses with no associated instance, in provider order."""
        ...

    def associate_address(self, region: str, address: str, provider_instance_id: str) -> None:
        """Bind an address to an instance. Raises AssociationConflictError or BackendError."""
        ...

    def disassociate_address(self, region: str, address: str) -> None:
        ...

    def allocate_address(self, region: str) -> PublicAddress:
        """Allocate a new address from the pool. Raises BackendError (e.g. quota)."""
        ...


class EC2Gateway(KeyPairGateway, ElasticIpGateway, Protocol):
    """Authenticated handle on one AWS account."""

    def create_instances(self, tag: str, count: int, template: LaunchTemplate) -> list[NodeRecord]:
        """Launch ``count`` instances in one batch call."""
        ...

    def get_node(self, instance_id: str) -> NodeRecord:
        ...

    def list_assignable_locations(self) -> set[Location]:
        """Top-level locations (regions) the account can place instances in."""
        ...


class NovaGateway(Protocol):
    """Authenticated handle on one OpenStack project."""

    def create_single_instance(
        self,
        tag: str,
        image: str,
        hardware_type: str,
        key_pair_name: str | None = None,
        user_data: str = "",
        options: Options | None = None,
    ) -> NodeRecord:
        ...

    def get_node(self, instance_id: str) -> NodeRecord:
        ...

    def supports_floating_ips(self) -> bool:
        ...

    def list_floating_ips(self) -> list[PublicAddress]:
        """All floating IPs of the project; unbound ones have no associated instance."""
        ...

    def add_floating_ip(self, address: str, server_id: str) -> None:
        ...

    def remove_floating_ip(self, address: str, server_id: str) -> None:
        ...


class CloudProvider(Protocol):
    """Uniform surface every backend exposes to the hosting service."""

    type: str

    def create_instance(self, infrastructure: Infrastructure, instance: Instance) -> set[Instance]:
        ...

    def add_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> str:
        ...

    def remove_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> None:
        ...
