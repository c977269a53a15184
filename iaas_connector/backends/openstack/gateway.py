"""openstacksdk-backed Nova gateway — servers and floating IPs in a single region."""

from __future__ import annotations

import base64

from openstack import connection
from openstack import exceptions as os_exceptions

from iaas_connector.core.errors import BackendError, UnsupportedOperationError
from iaas_connector.core.models import Infrastructure, Location, NodeRecord, Options, PublicAddress
from iaas_connector.shared import config


class OpenStackNovaGateway:
    def __init__(self, infrastructure: Infrastructure, region: str | None = None):
        creds = infrastructure.credentials
        self._region = region or infrastructure.region or config.OPENSTACK_REGION()
        self._conn = connection.Connection(
            auth_url=infrastructure.endpoint,
            username=creds.username,
            password=creds.password,
            project_name=creds.project,
            user_domain_name=creds.domain or "Default",
            project_domain_name=creds.domain or "Default",
            region_name=self._region,
            compute_api_version="2",
            identity_interface="public",
            api_timeout=config.READ_TIMEOUT(),
        )

    # --- Servers ---

    def create_single_instance(
        self,
        tag: str,
        image: str,
        hardware_type: str,
        key_pair_name: str | None = None,
        user_data: str = "",
        options: Options | None = None,
    ) -> NodeRecord:
        kwargs = {"name": tag, "image_id": image, "flavor_id": hardware_type}
        if key_pair_name:
            kwargs["key_name"] = key_pair_name
        if user_data:
            kwargs["user_data"] = base64.b64encode(user_data.encode("utf-8")).decode("ascii")
        if options is not None:
            if options.security_group_names:
                kwargs["security_groups"] = [{"name": name} for name in options.security_group_names]
            if options.tags:
                kwargs["metadata"] = {t.key: t.value for t in options.tags}

        try:
            created = self._conn.compute.create_server(**kwargs)
            server = self._conn.compute.get_server(created.id)
        except os_exceptions.SDKException as exc:
            raise BackendError(f"Cannot create server {tag}: {exc}") from exc
        return self._node_from_server(server)

    def get_node(self, instance_id: str) -> NodeRecord:
        try:
            server = self._conn.compute.get_server(instance_id)
        except os_exceptions.SDKException as exc:
            raise BackendError(f"Cannot get server {instance_id}: {exc}") from exc
        return self._node_from_server(server)

    # --- Floating IPs ---

    def supports_floating_ips(self) -> bool:
        """True when Neutron is present with the L3 extension that owns floating IPs."""
        if not self._conn.has_service("network"):
            return False
        try:
            return self._conn.network.find_extension("router") is not None
        except os_exceptions.SDKException as exc:
            raise BackendError(f"Cannot list network extensions: {exc}") from exc

    def list_floating_ips(self) -> list[PublicAddress]:
        try:
            ips = list(self._conn.network.ips())
        except os_exceptions.NotFoundException as exc:
            raise UnsupportedOperationError("Floating IPs are not available on this cloud") from exc
        except os_exceptions.SDKException as exc:
            raise BackendError(f"Cannot list floating IPs: {exc}") from exc
        return [PublicAddress(ip.floating_ip_address, self._bound_server(ip)) for ip in ips]

    def add_floating_ip(self, address: str, server_id: str) -> None:
        # Nova dropped the addFloatingIp server action in 2.44; bind through Neutron.
        try:
            ip = self._find_ip(address)
            port = next(iter(self._conn.network.ports(device_id=server_id)), None)
            if port is None:
                raise BackendError(f"Server {server_id} has no port to bind {address} to")
            self._conn.network.update_ip(ip, port_id=port.id)
        except os_exceptions.SDKException as exc:
            raise BackendError(f"Cannot add floating IP {address} to server {server_id}: {exc}") from exc

    def remove_floating_ip(self, address: str, server_id: str) -> None:
        try:
            ip = self._find_ip(address)
            self._conn.network.update_ip(ip, port_id=None)
        except os_exceptions.SDKException as exc:
            raise BackendError(
                f"Cannot remove floating IP {address} from server {server_id}: {exc}"
            ) from exc

    def _find_ip(self, address: str):
        ip = next(iter(self._conn.network.ips(floating_ip_address=address)), None)
        if ip is None:
            raise BackendError(f"Floating IP {address} not found")
        return ip

    @staticmethod
    def _bound_server(ip) -> str | None:
        if ip.fixed_ip_address is None:
            return None
        details = ip.port_details or {}
        return details.get("device_id") or ip.port_id

    def _node_from_server(self, server) -> NodeRecord:
        public, private = [], []
        for entries in (server.addresses or {}).values():
            for entry in entries:
                if entry.get("OS-EXT-IPS:type") == "floating":
                    public.append(entry["addr"])
                else:
                    private.append(entry["addr"])

        image = server.image or {}
        flavor = server.flavor or {}
        region_location = Location(self._region)
        zone = server.availability_zone
        return NodeRecord(
            id=server.id,
            provider_id=server.id,
            name=server.name or "",
            image=image.get("name") or image.get("id", ""),
            hardware_type=flavor.get("original_name") or flavor.get("name") or flavor.get("id", ""),
            status=server.status or "",
            location=Location(zone, parent=region_location) if zone else region_location,
            public_addresses=tuple(public),
            private_addresses=tuple(private),
        )
