"""AWS EC2 provider — batch creation with per-region default key pairs, elastic IPs."""

from __future__ import annotations

import logging
from typing import Callable

from iaas_connector.backends.aws.gateway import Boto3EC2Gateway
from iaas_connector.backends.aws.instance_types import select_instance_type
from iaas_connector.core.addresses import acquire_elastic_ip, release_elastic_ip
from iaas_connector.core.errors import BackendError, InstanceCreationError
from iaas_connector.core.interfaces import EC2Gateway
from iaas_connector.core.keypairs import KeyPairCache
from iaas_connector.core.models import (
    Hardware,
    Infrastructure,
    Instance,
    InstanceCredentials,
    KeyPairRecord,
    LaunchTemplate,
    NodeRecord,
)
from iaas_connector.core.regions import (
    REGION_SEPARATOR,
    region_from_image,
    region_from_node,
    region_from_zone,
    split_instance_id,
)
from iaas_connector.shared import config

logger = logging.getLogger(__name__)


class AWSEC2Provider:
    type = "aws-ec2"

    def __init__(
        self,
        key_pairs: KeyPairCache | None = None,
        gateway_factory: Callable[[Infrastructure], EC2Gateway] = Boto3EC2Gateway,
    ):
        self.key_pairs = key_pairs if key_pairs is not None else KeyPairCache()
        self._gateway_factory = gateway_factory

    def create_instance(self, infrastructure: Infrastructure, instance: Instance) -> set[Instance]:
        """Create ``instance.number`` instances in one batch call.

        Without explicit credentials, the region's default key pair is used.
        A failing batch raises InstanceCreationError and returns nothing, even
        if some instances were created remotely before the failure.
        """
        gateway = self._gateway_factory(infrastructure)
        region = region_from_image(instance.image)

        credentials = instance.credentials or self._default_credentials(region, gateway)
        template = self._build_template(region, instance, credentials)

        try:
            nodes = gateway.create_instances(instance.tag, int(instance.number), template)
        except BackendError as exc:
            raise InstanceCreationError(
                f"Failed to create {instance.number} instance(s) with tag {instance.tag}: {exc}"
            ) from exc

        return {self._instance_from_node(node) for node in nodes}

    def add_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> str:
        gateway = self._gateway_factory(infrastructure)
        node = gateway.get_node(instance_id)
        region = self._region_of(gateway, instance_id, node)
        return acquire_elastic_ip(
            gateway,
            region,
            node.provider_id,
            desired_ip,
            max_candidates=config.MAX_ADDRESS_CANDIDATES(),
        )

    def remove_public_ip(
        self, infrastructure: Infrastructure, instance_id: str, desired_ip: str | None = None
    ) -> None:
        gateway = self._gateway_factory(infrastructure)
        node = gateway.get_node(instance_id)
        region = self._region_of(gateway, instance_id, node)
        release_elastic_ip(gateway, region, node, desired_ip)

    def default_key_pair(self, infrastructure: Infrastructure, instance_id: str) -> KeyPairRecord | None:
        """Return the cached default key pair of the instance's region, if any.

        Used to log into instances created with default credentials. No key
        pair is created here.
        """
        gateway = self._gateway_factory(infrastructure)
        node = gateway.get_node(instance_id)
        if node.location is None:
            raise BackendError(f"Instance {instance_id} has no location")
        zone = node.location.id
        # Zones end with a letter ("eu-west-1c"), regions with a digit.
        region = region_from_zone(zone) if zone[-1:].isalpha() else zone
        return self.key_pairs.peek(region)

    def _default_credentials(self, region: str, gateway: EC2Gateway) -> InstanceCredentials:
        username = config.VM_USER_LOGIN()
        resolution = self.key_pairs.resolve(region, gateway)
        if not resolution.ok:
            logger.warning(
                "No default key pair available in region %s, creating instances without one",
                region,
            )
            return InstanceCredentials(username=username)
        return InstanceCredentials(username=username, public_key_name=resolution.key_pair.name)

    def _build_template(
        self, region: str, instance: Instance, credentials: InstanceCredentials
    ) -> LaunchTemplate:
        _, _, image_id = instance.image.rpartition(REGION_SEPARATOR)
        hardware = instance.hardware
        instance_type = hardware.type or select_instance_type(
            float(hardware.min_cores or 1), int(hardware.min_ram or 0)
        )

        logger.info("Username given for instance creation: %s", credentials.username)
        logger.info("Public key name given for instance creation: %s", credentials.public_key_name)

        options = instance.options
        return LaunchTemplate(
            region=region,
            image_id=image_id,
            instance_type=instance_type,
            key_name=credentials.public_key_name or None,
            security_group_ids=options.security_group_names if options else (),
            subnet_id=(options.subnet_id or None) if options else None,
            spot_price=(options.spot_price or None) if options else None,
            tags=options.tags if options else (),
            user_data="\n".join(instance.init_scripts),
        )

    @staticmethod
    def _region_of(gateway: EC2Gateway, instance_id: str, node: NodeRecord) -> str:
        region, _ = split_instance_id(instance_id)
        if region:
            return region
        if node.location is None:
            raise BackendError(f"Instance {instance_id} has no location")
        return region_from_node(node.location, gateway.list_assignable_locations())

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
