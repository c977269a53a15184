"""Shared fixtures for unit tests — uses in-memory gateways, no cloud needed."""

import pytest
import sys
import os

# Add project root to path so iaas_connector is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from iaas_connector.backends.aws.provider import AWSEC2Provider
from iaas_connector.backends.mock.gateways import InMemoryEC2Gateway, InMemoryNovaGateway
from iaas_connector.backends.openstack.provider import OpenStackNovaProvider
from iaas_connector.core.keypairs import KeyPairCache
from iaas_connector.core.models import Hardware, Infrastructure, InfrastructureCredentials, Instance


AWS_INFRASTRUCTURE = Infrastructure(
    id="aws-test",
    type="aws-ec2",
    credentials=InfrastructureCredentials(username="AKIDEXAMPLE", password="secret"),
)

OPENSTACK_INFRASTRUCTURE = Infrastructure(
    id="openstack-test",
    type="openstack-nova",
    endpoint="http://keystone.example:5000/v3",
    credentials=InfrastructureCredentials(
        username="demo", password="secret", domain="Default", project="demo"
    ),
)

SAMPLE_AWS_REQUEST = Instance(
    tag="workers",
    image="eu-west-1/ami-0abc",
    number="3",
    hardware=Hardware(min_ram="2048", min_cores="2"),
)


@pytest.fixture
def ec2_gateway():
    return InMemoryEC2Gateway()


@pytest.fixture
def nova_gateway():
    return InMemoryNovaGateway()


@pytest.fixture
def key_pairs():
    return KeyPairCache()


@pytest.fixture
def aws_provider(ec2_gateway, key_pairs):
    return AWSEC2Provider(key_pairs=key_pairs, gateway_factory=lambda infrastructure: ec2_gateway)


@pytest.fixture
def openstack_provider(nova_gateway):
    return OpenStackNovaProvider(gateway_factory=lambda infrastructure: nova_gateway)


@pytest.fixture
def aws_infrastructure():
    return AWS_INFRASTRUCTURE


@pytest.fixture
def openstack_infrastructure():
    return OPENSTACK_INFRASTRUCTURE


@pytest.fixture
def aws_request():
    return SAMPLE_AWS_REQUEST
