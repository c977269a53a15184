"""Error kinds raised by the core and translated to by the gateways."""

from __future__ import annotations


class ConnectorError(Exception):
    """Base class for every error the connector raises on purpose."""


class UnsupportedOperationError(ConnectorError):
    """The backend or account lacks the required capability (e.g. floating IPs)."""


class ExhaustedResourceError(ConnectorError):
    """No free address is left and a new one cannot be allocated."""


class AssociationConflictError(ConnectorError):
    """An address could not be bound to an instance (lost a race, stale state)."""


class BackendError(ConnectorError):
    """Any other failure of a remote call."""


class InstanceCreationError(ConnectorError):
    """Instance creation failed. Instances created before the failure may still exist remotely."""
