"""Tests for the EC2 launcher and its lookups."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

import launch_install_instance as launcher
from utils import aws


class ParameterNotFound(Exception):
    pass


def client_error(code, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def ec2_client():
    client = MagicMock()
    client.exceptions.ClientError = ClientError
    return client


@pytest.fixture
def ssm_client():
    client = MagicMock()
    client.exceptions.ParameterNotFound = ParameterNotFound
    return client


def opened_ports(ec2_client):
    return [
        call.kwargs["IpPermissions"][0]["FromPort"]
        for call in ec2_client.authorize_security_group_ingress.call_args_list
    ]


def test_filters_use_dashed_names():
    assert aws.ec2_filters(vpc_id="vpc-1", is_default="true") == [
        {"Name": "vpc-id", "Values": ["vpc-1"]},
        {"Name": "is-default", "Values": ["true"]},
    ]


class TestFindDefaultNetwork:
    def test_returns_vpc_and_public_subnet(self, ec2_client):
        ec2_client.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1"}]}
        ec2_client.describe_subnets.return_value = {"Subnets": [{"SubnetId": "subnet-9"}]}

        assert aws.find_default_network(ec2_client) == ("vpc-1", "subnet-9")
        filters = ec2_client.describe_subnets.call_args.kwargs["Filters"]
        assert {"Name": "map-public-ip-on-launch", "Values": ["true"]} in filters

    def test_missing_public_subnet(self, ec2_client):
        ec2_client.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1"}]}
        ec2_client.describe_subnets.return_value = {"Subnets": []}

        with pytest.raises(RuntimeError, match="vpc-1"):
            aws.find_default_network(ec2_client)


class TestEnsureInstallSg:
    def test_creates_group_and_opens_ssh_and_namenode_ui(self, ec2_client):
        ec2_client.create_security_group.return_value = {"GroupId": "sg-new"}

        sg_id = launcher.ensure_install_sg(ec2_client, "vpc-1", "203.0.113.7/32")

        assert sg_id == "sg-new"
        assert opened_ports(ec2_client) == [22, 50070]
        cidrs = {
            call.kwargs["IpPermissions"][0]["IpRanges"][0]["CidrIp"]
            for call in ec2_client.authorize_security_group_ingress.call_args_list
        }
        assert cidrs == {"203.0.113.7/32"}

    def test_reuses_existing_group_and_rules(self, ec2_client):
        ec2_client.create_security_group.side_effect = client_error("InvalidGroup.Duplicate")
        ec2_client.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-old"}]}
        ec2_client.authorize_security_group_ingress.side_effect = client_error("InvalidPermission.Duplicate")

        assert launcher.ensure_install_sg(ec2_client, "vpc-1", "203.0.113.7/32") == "sg-old"

    def test_unexpected_errors_propagate(self, ec2_client):
        ec2_client.create_security_group.side_effect = client_error("UnauthorizedOperation")

        with pytest.raises(ClientError):
            launcher.ensure_install_sg(ec2_client, "vpc-1", "203.0.113.7/32")


class TestResolveUbuntuAmi:
    def test_first_published_parameter_wins(self, ssm_client, ec2_client):
        ssm_client.get_parameter.side_effect = [
            ParameterNotFound(),
            {"Parameter": {"Value": "ami-0abc"}},
        ]

        assert aws.resolve_ubuntu_ami(ssm_client, ec2_client) == "ami-0abc"
        ec2_client.describe_images.assert_not_called()

    def test_falls_back_to_newest_canonical_image(self, ssm_client, ec2_client):
        ssm_client.get_parameter.side_effect = ParameterNotFound()
        ec2_client.describe_images.return_value = {"Images": [
            {"ImageId": "ami-old", "CreationDate": "2023-01-01T00:00:00.000Z"},
            {"ImageId": "ami-new", "CreationDate": "2024-06-01T00:00:00.000Z"},
        ]}

        assert aws.resolve_ubuntu_ami(ssm_client, ec2_client) == "ami-new"
        assert ec2_client.describe_images.call_args.kwargs["Owners"] == ["099720109477"]

    def test_no_image_anywhere(self, ssm_client, ec2_client):
        ssm_client.get_parameter.side_effect = ParameterNotFound()
        ec2_client.describe_images.return_value = {"Images": []}

        with pytest.raises(RuntimeError, match="No Ubuntu 22.04 AMIs"):
            aws.resolve_ubuntu_ami(ssm_client, ec2_client)


def test_launch_passes_user_data(ec2_client):
    ec2_client.run_instances.return_value = {"Instances": [{"InstanceId": "i-123"}]}

    instance_id = launcher.launch_install_instance(
        ec2_client, "ami-0abc", "subnet-1", "sg-1", "#!/bin/bash\n", instance_type="t3.large"
    )

    assert instance_id == "i-123"
    kwargs = ec2_client.run_instances.call_args.kwargs
    assert kwargs["UserData"] == "#!/bin/bash\n"
    assert kwargs["InstanceType"] == "t3.large"
    assert kwargs["SecurityGroupIds"] == ["sg-1"]


def test_public_ip_after_instance_runs(ec2_client):
    ec2_client.describe_instances.return_value = {
        "Reservations": [{"Instances": [{"PublicIpAddress": "198.51.100.4"}]}]
    }

    assert launcher.wait_for_public_ip(ec2_client, "i-123") == "198.51.100.4"
    ec2_client.get_waiter.assert_called_once_with("instance_running")
