"""Provider lookup by infrastructure type.

Each adapter is built once and kept for the registry's lifetime, so the AWS
adapter's key-pair cache lives as long as the hosting process.
"""

from __future__ import annotations

import logging

from iaas_connector.core.errors import UnsupportedOperationError
from iaas_connector.core.interfaces import CloudProvider
from iaas_connector.core.models import Infrastructure

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(self, providers: list[CloudProvider] | None = None):
        self._providers: dict[str, CloudProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: CloudProvider) -> None:
        if provider.type in self._providers:
            logger.warning("Replacing provider for infrastructure type %s", provider.type)
        self._providers[provider.type] = provider

    def get(self, infrastructure: Infrastructure) -> CloudProvider:
        provider = self._providers.get(infrastructure.type)
        if provider is None:
            raise UnsupportedOperationError(
                f"Unsupported infrastructure type: {infrastructure.type}"
            )
        return provider

    def types(self) -> list[str]:
        return sorted(self._providers)


def default_registry() -> ProviderRegistry:
    """Build a registry with the boto3 and openstacksdk backed providers."""
    from iaas_connector.backends.aws.provider import AWSEC2Provider
    from iaas_connector.backends.openstack.provider import OpenStackNovaProvider

    return ProviderRegistry([AWSEC2Provider(), OpenStackNovaProvider()])
