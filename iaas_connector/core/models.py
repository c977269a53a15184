"""Records shared between the core and the backends."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InfrastructureCredentials:
    username: str = ""
    password: str = ""
    domain: str = ""
    project: str = ""


@dataclass(frozen=True)
class Infrastructure:
    """One cloud account/project the connector can talk to."""

    id: str
    type: str
    endpoint: str = ""
    credentials: InfrastructureCredentials = field(default_factory=InfrastructureCredentials)
    region: str | None = None


@dataclass(frozen=True)
class InstanceCredentials:
    username: str | None = None
    password: str | None = None
    public_key_name: str | None = None
    public_key: str | None = None
    private_key: str | None = None


@dataclass(frozen=True)
class Hardware:
    min_ram: str | None = None
    min_cores: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class Tag:
    key: str
    value: str


@dataclass(frozen=True)
class Options:
    spot_price: str | None = None
    security_group_names: tuple[str, ...] = ()
    subnet_id: str | None = None
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class Instance:
    """Internal instance representation, used both for requests and results.

    For AWS requests ``image`` is region-qualified: ``"eu-west-1/ami-123"``.
    """

    id: str | None = None
    tag: str = ""
    image: str = ""
    number: str = "1"
    hardware: Hardware = field(default_factory=Hardware)
    status: str | None = None
    credentials: InstanceCredentials | None = None
    options: Options | None = None
    init_scripts: tuple[str, ...] = ()


@dataclass(frozen=True)
class KeyPairRecord:
    name: str
    private_key_material: str


@dataclass(frozen=True)
class PublicAddress:
    value: str
    associated_instance_id: str | None = None


@dataclass(frozen=True)
class Location:
    """A node in the backend's location tree (zone -> region -> provider)."""

    id: str
    parent: Location | None = None


@dataclass(frozen=True)
class LaunchTemplate:
    """Everything a batch create needs besides tag and count."""

    region: str
    image_id: str
    instance_type: str
    key_name: str | None = None
    security_group_ids: tuple[str, ...] = ()
    subnet_id: str | None = None
    spot_price: str | None = None
    tags: tuple[Tag, ...] = ()
    user_data: str = ""


@dataclass(frozen=True)
class NodeRecord:
    """A backend instance record as reported by the gateway."""

    id: str
    provider_id: str
    name: str = ""
    image: str = ""
    hardware_type: str = ""
    status: str = ""
    location: Location | None = None
    public_addresses: tuple[str, ...] = ()
    private_addresses: tuple[str, ...] = ()
