"""Public IP acquisition — reuse a free address before allocating a new one.

Cloud-agnostic: depends on ElasticIpGateway and NovaGateway protocols.
"""

from __future__ import annotations

import logging

from iaas_connector.core.errors import (
    AssociationConflictError,
    BackendError,
    ExhaustedResourceError,
    UnsupportedOperationError,
)
from iaas_connector.core.interfaces import ElasticIpGateway, NovaGateway
from iaas_connector.core.models import NodeRecord

logger = logging.getLogger(__name__)


def acquire_elastic_ip(
    gateway: ElasticIpGateway,
    region: str,
    provider_instance_id: str,
    desired_ip: str | None = None,
    max_candidates: int | None = None,
) -> str:
    """Associate a public address to an instance and return it.

    A desired address is associated as-is. Otherwise every free address is
    tried in provider order, moving on when an association fails; when none
    sticks, a new address is allocated and associated. ``max_candidates``
    bounds the scan; None scans every free address.
    """
    if desired_ip:
        gateway.associate_address(region, desired_ip, provider_instance_id)
        return desired_ip

    candidates = gateway.list_free_addresses(region)
    if max_candidates is not None:
        candidates = candidates[:max_candidates]

    for candidate in candidates:
        try:
            gateway.associate_address(region, candidate.value, provider_instance_id)
        except (AssociationConflictError, BackendError):
            logger.warning(
                "Cannot associate address %s in region %s", candidate.value, region, exc_info=True
            )
            continue
        return candidate.value

    try:
        allocated = gateway.allocate_address(region)
    except BackendError as exc:
        raise ExhaustedResourceError(
            "Failed to allocate a new IP address, no addresses available"
        ) from exc

    logger.info("Allocated address %s in region %s", allocated.value, region)
    gateway.associate_address(region, allocated.value, provider_instance_id)
    return allocated.value


def release_elastic_ip(
    gateway: ElasticIpGateway,
    region: str,
    node: NodeRecord,
    address: str | None = None,
) -> str | None:
    """Disassociate ``address``, or any one address bound to the node.

    Returns the released address, None when the node had none.
    """
    if address:
        gateway.disassociate_address(region, address)
        return address

    if not node.public_addresses:
        logger.info("Instance %s has no public address to release", node.id)
        return None

    target = node.public_addresses[0]
    gateway.disassociate_address(region, target)
    return target


def acquire_floating_ip(
    gateway: NovaGateway,
    server_id: str,
    desired_ip: str | None = None,
) -> str:
    """Bind the first unbound floating IP to a server. No retry loop."""
    if not gateway.supports_floating_ips():
        raise UnsupportedOperationError("Operation not supported for this OpenStack cloud")

    if desired_ip:
        gateway.add_floating_ip(desired_ip, server_id)
        return desired_ip

    free = next(
        (ip for ip in gateway.list_floating_ips() if ip.associated_instance_id is None),
        None,
    )
    if free is None:
        raise ExhaustedResourceError("No floating IP available")

    gateway.add_floating_ip(free.value, server_id)
    return free.value


def release_floating_ip(
    gateway: NovaGateway,
    node: NodeRecord,
    address: str | None = None,
) -> str | None:
    if not gateway.supports_floating_ips():
        raise UnsupportedOperationError("Operation not supported for this OpenStack cloud")

    if not address:
        if not node.public_addresses:
            logger.info("Server %s has no floating IP to release", node.id)
            return None
        address = node.public_addresses[0]

    gateway.remove_floating_ip(address, node.id)
    return address
