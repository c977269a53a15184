"""boto3-backed EC2 gateway — key pairs, elastic IPs, instances."""

from __future__ import annotations

import logging
import threading
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from iaas_connector.core.errors import AssociationConflictError, BackendError
from iaas_connector.core.models import (
    Infrastructure,
    KeyPairRecord,
    LaunchTemplate,
    Location,
    NodeRecord,
    PublicAddress,
)
from iaas_connector.core.regions import split_instance_id
from iaas_connector.shared import config

logger = logging.getLogger(__name__)

PROVIDER_LOCATION = Location("aws-ec2")

# Error codes meaning "this address cannot be bound right now", as opposed to
# a broken request or an unreachable endpoint.
ASSOCIATION_CONFLICT_CODES = {
    "Resource.AlreadyAssociated",
    "InvalidAddress.NotFound",
    "InvalidAllocationID.NotFound",
    "InvalidIPAddress.InUse",
}


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class Boto3EC2Gateway:
    """EC2 gateway for one AWS account, with one client per region."""

    def __init__(
        self,
        infrastructure: Infrastructure,
        default_region: str = "us-east-1",
        endpoint_url: str | None = None,
    ):
        creds = infrastructure.credentials
        session_kwargs = {}
        if creds.username:
            session_kwargs["aws_access_key_id"] = creds.username
        if creds.password:
            session_kwargs["aws_secret_access_key"] = creds.password
        self._session = boto3.session.Session(**session_kwargs)
        self._default_region = infrastructure.region or default_region
        self._endpoint_url = endpoint_url or infrastructure.endpoint or config.AWS_ENDPOINT_URL() or None
        self._config = Config(
            connect_timeout=config.CONNECT_TIMEOUT(),
            read_timeout=config.READ_TIMEOUT(),
        )
        self._lock = threading.Lock()
        self._clients: dict[str, object] = {}

    def _ec2(self, region: str | None = None):
        region = region or self._default_region
        # boto3 sessions are not thread-safe; clients are.
        with self._lock:
            client = self._clients.get(region)
            if client is None:
                kwargs = {"region_name": region, "config": self._config}
                if self._endpoint_url:
                    kwargs["endpoint_url"] = self._endpoint_url
                client = self._session.client("ec2", **kwargs)
                self._clients[region] = client
            return client

    # --- Key pairs ---

    def create_key_pair(self, region: str) -> KeyPairRecord:
        name = f"default-{region}-{uuid.uuid4()}"
        try:
            resp = self._ec2(region).create_key_pair(KeyName=name)
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot create key pair in region {region}: {exc}") from exc
        return KeyPairRecord(name=name, private_key_material=resp["KeyMaterial"])

    def list_key_pairs(self, region: str, name: str) -> set[str]:
        try:
            resp = self._ec2(region).describe_key_pairs(KeyNames=[name])
        except ClientError as exc:
            if _error_code(exc) == "InvalidKeyPair.NotFound":
                return set()
            raise BackendError(f"Cannot list key pairs in region {region}: {exc}") from exc
        except BotoCoreError as exc:
            raise BackendError(f"Cannot list key pairs in region {region}: {exc}") from exc
        return {kp["KeyName"] for kp in resp.get("KeyPairs", [])}

    # --- Elastic IPs ---

    def _describe_addresses(self, region: str, **kwargs) -> list[dict]:
        try:
            return self._ec2(region).describe_addresses(**kwargs).get("Addresses", [])
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot describe addresses in region {region}: {exc}") from exc

    def list_free_addresses(self, region: str) -> list[PublicAddress]:
        return [
            PublicAddress(value=addr["PublicIp"])
            for addr in self._describe_addresses(region)
            if not addr.get("InstanceId") and not addr.get("AssociationId")
        ]

    def associate_address(self, region: str, address: str, provider_instance_id: str) -> None:
        known = self._describe_addresses(region, PublicIps=[address])
        kwargs = {"InstanceId": provider_instance_id, "AllowReassociation": False}
        if known and known[0].get("AllocationId"):
            kwargs["AllocationId"] = known[0]["AllocationId"]
        else:
            kwargs["PublicIp"] = address

        try:
            self._ec2(region).associate_address(**kwargs)
        except ClientError as exc:
            if _error_code(exc) in ASSOCIATION_CONFLICT_CODES:
                raise AssociationConflictError(
                    f"Address {address} cannot be associated to {provider_instance_id}: {exc}"
                ) from exc
            raise BackendError(f"Cannot associate address {address} in region {region}: {exc}") from exc
        except BotoCoreError as exc:
            raise BackendError(f"Cannot associate address {address} in region {region}: {exc}") from exc

    def disassociate_address(self, region: str, address: str) -> None:
        known = self._describe_addresses(region, PublicIps=[address])
        if known and known[0].get("AssociationId"):
            kwargs = {"AssociationId": known[0]["AssociationId"]}
        else:
            kwargs = {"PublicIp": address}
        try:
            self._ec2(region).disassociate_address(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot disassociate address {address} in region {region}: {exc}") from exc

    def allocate_address(self, region: str) -> PublicAddress:
        try:
            resp = self._ec2(region).allocate_address(Domain="vpc")
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot allocate address in region {region}: {exc}") from exc
        return PublicAddress(value=resp["PublicIp"])

    # --- Instances ---

    def create_instances(self, tag: str, count: int, template: LaunchTemplate) -> list[NodeRecord]:
        tags = [{"Key": "Name", "Value": tag}]
        tags += [{"Key": t.key, "Value": t.value} for t in template.tags]
        kwargs = {
            "ImageId": template.image_id,
            "InstanceType": template.instance_type,
            "MinCount": count,
            "MaxCount": count,
            "TagSpecifications": [{"ResourceType": "instance", "Tags": tags}],
        }
        if template.key_name:
            kwargs["KeyName"] = template.key_name
        if template.security_group_ids:
            kwargs["SecurityGroupIds"] = list(template.security_group_ids)
        if template.subnet_id:
            kwargs["SubnetId"] = template.subnet_id
        if template.spot_price:
            kwargs["InstanceMarketOptions"] = {
                "MarketType": "spot",
                "SpotOptions": {"MaxPrice": template.spot_price},
            }
        if template.user_data:
            kwargs["UserData"] = template.user_data

        logger.info(
            "Running %d instance(s) of %s (%s) in region %s",
            count,
            template.image_id,
            template.instance_type,
            template.region,
        )
        try:
            resp = self._ec2(template.region).run_instances(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot run instances in region {template.region}: {exc}") from exc
        return [self._node_from_instance(template.region, inst) for inst in resp.get("Instances", [])]

    def get_node(self, instance_id: str) -> NodeRecord:
        """Describe an instance.

        A ``region/id`` identifier is looked up in its region only. A bare id is
        tried in the default region first, then in every other region.
        """
        region, bare_id = split_instance_id(instance_id)
        if region:
            node = self._find_node(region, bare_id)
            if node is None:
                raise BackendError(f"Instance {instance_id} not found in region {region}")
            return node

        node = self._find_node(self._default_region, bare_id)
        if node is not None:
            return node
        others = sorted(loc.id for loc in self.list_assignable_locations())
        for other in others:
            if other == self._default_region:
                continue
            node = self._find_node(other, bare_id)
            if node is not None:
                return node
        raise BackendError(f"Instance {instance_id} not found in any region")

    def _find_node(self, region: str, bare_id: str) -> NodeRecord | None:
        try:
            resp = self._ec2(region).describe_instances(InstanceIds=[bare_id])
        except ClientError as exc:
            if _error_code(exc) == "InvalidInstanceID.NotFound":
                return None
            raise BackendError(f"Cannot describe instance {bare_id} in region {region}: {exc}") from exc
        except BotoCoreError as exc:
            raise BackendError(f"Cannot describe instance {bare_id} in region {region}: {exc}") from exc

        for reservation in resp.get("Reservations", []):
            for inst in reservation.get("Instances", []):
                return self._node_from_instance(region, inst)
        return None

    def list_assignable_locations(self) -> set[Location]:
        try:
            resp = self._ec2().describe_regions()
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(f"Cannot list regions: {exc}") from exc
        return {Location(r["RegionName"], parent=PROVIDER_LOCATION) for r in resp.get("Regions", [])}

    @staticmethod
    def _node_from_instance(region: str, inst: dict) -> NodeRecord:
        zone = inst.get("Placement", {}).get("AvailabilityZone", "")
        region_location = Location(region, parent=PROVIDER_LOCATION)
        location = Location(zone, parent=region_location) if zone else region_location
        name = next((t["Value"] for t in inst.get("Tags", []) if t["Key"] == "Name"), "")
        public = inst.get("PublicIpAddress")
        private = inst.get("PrivateIpAddress")
        return NodeRecord(
            id=f"{region}/{inst['InstanceId']}",
            provider_id=inst["InstanceId"],
            name=name,
            image=f"{region}/{inst.get('ImageId', '')}",
            hardware_type=inst.get("InstanceType", ""),
            status=inst.get("State", {}).get("Name", ""),
            location=location,
            public_addresses=(public,) if public else (),
            private_addresses=(private,) if private else (),
        )
