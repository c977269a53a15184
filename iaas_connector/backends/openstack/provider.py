"""OpenStack Nova provider — sequential creation, floating IPs."""

from __future__ import annotations

import logging
from typing import Callable

from iaas_connector.backends.openstack.gateway import OpenStackNovaGateway
from iaas_connector.core.addresses import acquire_floating_ip, release_floating_ip
from iaas_connector.core.errors import BackendError, InstanceCreationError
from iaas_connector.core.interfaces import NovaGateway
from iaas_connector.core.models import Hardware, Infrastructure, Instance, NodeRecord

logger = logging.getLogger(__name__)


class OpenStackNovaProvider:
    type = "openstack-nova"

    def __init__(self, gateway_factory: Callable[[Infrastructure], NovaGateway] = OpenStackNovaGateway):
        self._gateway_factory = gateway_factory

    def create_instance(self, infrastructure: Infrastructure, instance: Instance) -> set[Instance]:
        """Create ``instance.number`` servers, one API call each.

        Nova has no batch primitive, so a failure midway leaves the servers
        created so far running and raises InstanceCreationError.
        """
        if not instance.hardware.type:
            raise ValueError("OpenStack instances require a hardware type (flavor)")

        gateway = self._gateway_factory(infrastructure)
        count = int(instance.number)
        key_pair_name = instance.credentials.public_key_name if instance.credentials else None
        user_data = "\n".join(instance.init_scripts)

        nodes: list[NodeRecord] = []
        for _ in range(count):
            try:
                node = gateway.create_single_instance(
                    instance.tag,
                    instance.image,
                    instance.hardware.type,
                    key_pair_name=key_pair_name,
                    user_data=user_data,
                    options=instance.options,
                )
            except BackendError as exc:
                raise InstanceCreationError(
                    f"Failed to create instance {len(nodes) + 1}/{count} with tag {instance.tag}: {exc}"
                ) from exc
            logger.info("Created server %s (%d/%d)", node.id, len(nodes) + 1, count)
            nodes.append(node)

        return {self._instance_from_node(node) for node in nodes}

    def add_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> str:
        gateway = self._gateway_factory(infrastructure)
        node = gateway.get_node(instance_id)
        return acquire_floating_ip(gateway, node.id, desired_ip)

    def remove_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> None:
        gateway = self._gateway_factory(infrastructure)
        node = gateway.get_node(instance_id)
        release_floating_ip(gateway, node, desired_ip)

    @staticmethod
    def _instance_from_node(node: NodeRecord) -> Instance:
        return Instance(
            id=node.id,
            tag=node.name,
            image=node.image,
            number="1",
            hardware=Hardware(type=node.hardware_type),
            status=node.status,
        )
