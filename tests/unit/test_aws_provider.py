"""Unit tests for the AWS EC2 provider adapter."""

from __future__ import annotations

import pytest

from iaas_connector.backends.aws import instance_types
from iaas_connector.core.errors import ExhaustedResourceError, InstanceCreationError
from iaas_connector.core.models import Hardware, Instance, InstanceCredentials, Options, Tag


def test_create_instance_uses_region_default_key_pair(aws_provider, ec2_gateway, aws_infrastructure, aws_request):
    created = aws_provider.create_instance(aws_infrastructure, aws_request)

    assert len(created) == 3
    assert len({inst.id for inst in created}) == 3
    assert all(inst.id.startswith("eu-west-1/i-mock-") for inst in created)

    tag, count, template = ec2_gateway.batches[0]
    assert (tag, count) == ("workers", 3)
    assert template.region == "eu-west-1"
    assert template.image_id == "ami-0abc"
    assert template.instance_type == "t3.small"
    assert template.key_name == aws_provider.key_pairs.peek("eu-west-1").name


def test_create_instance_reuses_validated_key_pair(aws_provider, ec2_gateway, aws_infrastructure, aws_request):
    aws_provider.create_instance(aws_infrastructure, aws_request)
    aws_provider.create_instance(aws_infrastructure, aws_request)

    assert len(ec2_gateway.created_key_pairs) == 1
    assert ec2_gateway.batches[0][2].key_name == ec2_gateway.batches[1][2].key_name


def test_create_instance_with_explicit_credentials_skips_cache(
    aws_provider, ec2_gateway, aws_infrastructure, aws_request
):
    request = Instance(
        tag=aws_request.tag,
        image=aws_request.image,
        number="1",
        hardware=Hardware(type="m5.large"),
        credentials=InstanceCredentials(username="ubuntu", public_key_name="my-key"),
    )

    aws_provider.create_instance(aws_infrastructure, request)

    template = ec2_gateway.batches[0][2]
    assert template.key_name == "my-key"
    assert template.instance_type == "m5.large"
    assert ec2_gateway.created_key_pairs == []
    assert len(aws_provider.key_pairs) == 0


def test_create_instance_proceeds_without_key_when_creation_fails(
    aws_provider, ec2_gateway, aws_infrastructure, aws_request
):
    ec2_gateway.fail_key_pair_creation = True

    created = aws_provider.create_instance(aws_infrastructure, aws_request)

    assert len(created) == 3
    assert ec2_gateway.batches[0][2].key_name is None


def test_create_instance_maps_options(aws_provider, ec2_gateway, aws_infrastructure):
    request = Instance(
        tag="spot",
        image="us-east-1/ami-1",
        hardware=Hardware(type="t3.micro"),
        options=Options(
            spot_price="0.05",
            security_group_names=("sg-1", "sg-2"),
            subnet_id="subnet-1",
            tags=(Tag("team", "infra"),),
        ),
        init_scripts=("echo one", "echo two"),
    )

    aws_provider.create_instance(aws_infrastructure, request)

    template = ec2_gateway.batches[0][2]
    assert template.region == "us-east-1"
    assert template.spot_price == "0.05"
    assert template.security_group_ids == ("sg-1", "sg-2")
    assert template.subnet_id == "subnet-1"
    assert template.tags == (Tag("team", "infra"),)
    assert template.user_data == "echo one\necho two"


def test_batch_failure_raises_without_partial_result(aws_provider, ec2_gateway, aws_infrastructure, aws_request):
    ec2_gateway.fail_creation = True

    with pytest.raises(InstanceCreationError, match="workers"):
        aws_provider.create_instance(aws_infrastructure, aws_request)

    assert ec2_gateway.nodes == {}


def test_add_public_ip_uses_region_from_instance_id(aws_provider, ec2_gateway, aws_infrastructure):
    node = ec2_gateway.add_node("us-east-1", "us-east-1b", "i-1")
    ec2_gateway.add_address("us-east-1", "3.3.3.3")

    ip = aws_provider.add_public_ip(aws_infrastructure, node.id)

    assert ip == "3.3.3.3"
    assert ec2_gateway.association_attempts == [("us-east-1", "3.3.3.3", "i-1")]


def test_add_public_ip_walks_location_without_region_prefix(aws_provider, ec2_gateway, aws_infrastructure):
    ec2_gateway.add_node("eu-west-1", "eu-west-1c", "i-2")
    ec2_gateway.add_address("eu-west-1", "4.4.4.4")

    ip = aws_provider.add_public_ip(aws_infrastructure, "i-2")

    assert ip == "4.4.4.4"
    assert ec2_gateway.association_attempts[0][0] == "eu-west-1"


def test_add_public_ip_honours_desired_address(aws_provider, ec2_gateway, aws_infrastructure):
    node = ec2_gateway.add_node("eu-west-1", "eu-west-1a", "i-3")
    ec2_gateway.add_address("eu-west-1", "5.5.5.5")
    ec2_gateway.add_address("eu-west-1", "6.6.6.6")

    ip = aws_provider.add_public_ip(aws_infrastructure, node.id, "6.6.6.6")

    assert ip == "6.6.6.6"
    assert ec2_gateway.association_attempts == [("eu-west-1", "6.6.6.6", "i-3")]


def test_add_public_ip_respects_configured_candidate_cap(aws_provider, ec2_gateway, aws_infrastructure, monkeypatch):
    monkeypatch.setenv("IAAS_MAX_ADDRESS_CANDIDATES", "1")
    node = ec2_gateway.add_node("eu-west-1", "eu-west-1a", "i-4")
    ec2_gateway.add_address("eu-west-1", "7.7.7.7")
    ec2_gateway.add_address("eu-west-1", "8.8.8.8")
    ec2_gateway.conflicting_addresses.add("7.7.7.7")
    ec2_gateway.allocation_fails = True

    with pytest.raises(ExhaustedResourceError):
        aws_provider.add_public_ip(aws_infrastructure, node.id)

    assert [a[1] for a in ec2_gateway.association_attempts] == ["7.7.7.7"]


def test_remove_public_ip_explicit(aws_provider, ec2_gateway, aws_infrastructure):
    node = ec2_gateway.add_node("eu-west-1", "eu-west-1a", "i-5", public=("9.9.9.9",))

    aws_provider.remove_public_ip(aws_infrastructure, node.id, "1.2.3.4")

    assert ec2_gateway.disassociated == [("eu-west-1", "1.2.3.4")]


def test_remove_public_ip_any_bound_address(aws_provider, ec2_gateway, aws_infrastructure):
    ec2_gateway.add_node("eu-west-1", "eu-west-1a", "i-6", public=("9.9.9.9",))

    aws_provider.remove_public_ip(aws_infrastructure, "i-6")

    assert ec2_gateway.disassociated == [("eu-west-1", "9.9.9.9")]


def test_default_key_pair_derives_region_from_zone(aws_provider, ec2_gateway, aws_infrastructure, aws_request):
    created = aws_provider.create_instance(aws_infrastructure, aws_request)
    instance = next(iter(created))

    key_pair = aws_provider.default_key_pair(aws_infrastructure, instance.id)

    assert key_pair == aws_provider.key_pairs.peek("eu-west-1")
    assert key_pair.private_key_material


def test_default_key_pair_is_none_without_cached_entry(aws_provider, ec2_gateway, aws_infrastructure):
    node = ec2_gateway.add_node("us-east-1", "us-east-1d", "i-7")

    assert aws_provider.default_key_pair(aws_infrastructure, node.id) is None
    assert ec2_gateway.created_key_pairs == []


@pytest.mark.parametrize("cores,ram,expected", [(1, 0, "t3.micro"), (4, 8192, "t3.xlarge"), (16, 1024, "m5.4xlarge")])
def test_select_instance_type_picks_smallest_fit(cores, ram, expected):
    assert instance_types.select_instance_type(cores, ram) == expected


def test_select_instance_type_rejects_impossible_request():
    with pytest.raises(ValueError, match="No instance type"):
        instance_types.select_instance_type(512, 1024)
