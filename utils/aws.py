"""EC2 lookups used when provisioning on a fresh cloud host."""

from utils.constants import CANONICAL_OWNER_ID, UBUNTU_IMAGE_NAME_PATTERN, UBUNTU_SSM_AMI_PARAMS


# EC2 filter names are dashed; keyword arguments are underscored.
def ec2_filters(**values) -> list[dict]:
    return [
        {"Name": name.replace("_", "-"), "Values": [value]}
        for name, value in values.items()
    ]


def find_default_network(ec2_client) -> tuple[str, str]:
    """Return the default VPC and one of its subnets that maps public IPs."""
    vpcs = ec2_client.describe_vpcs(Filters=ec2_filters(is_default="true"))["Vpcs"]
    if not vpcs:
        raise RuntimeError("This region has no default VPC.")
    vpc_id = vpcs[0]["VpcId"]

    subnets = ec2_client.describe_subnets(
        Filters=ec2_filters(vpc_id=vpc_id, map_public_ip_on_launch="true")
    )["Subnets"]
    if not subnets:
        raise RuntimeError(f"Default VPC {vpc_id} has no subnet with public IPs.")
    return vpc_id, subnets[0]["SubnetId"]


def ensure_security_group(ec2_client, vpc_id: str, name: str, description: str) -> str:
    try:
        return ec2_client.create_security_group(
            Description=description, GroupName=name, VpcId=vpc_id,
        )["GroupId"]
    except ec2_client.exceptions.ClientError as e:
        if e.response["Error"]["Code"] != "InvalidGroup.Duplicate":
            raise
    existing = ec2_client.describe_security_groups(GroupNames=[name])["SecurityGroups"]
    return existing[0]["GroupId"]


def open_tcp_port(ec2_client, sg_id: str, port: int, cidr_ip: str) -> None:
    rule = {"FromPort": port, "ToPort": port, "IpProtocol": "tcp", "IpRanges": [{"CidrIp": cidr_ip}]}
    try:
        ec2_client.authorize_security_group_ingress(GroupId=sg_id, IpPermissions=[rule])
    except ec2_client.exceptions.ClientError as e:
        if e.response["Error"].get("Code") != "InvalidPermission.Duplicate":
            raise


def published_ubuntu_ami(ssm_client):
    for param in UBUNTU_SSM_AMI_PARAMS:
        try:
            value = ssm_client.get_parameter(Name=param)["Parameter"]["Value"]
        except ssm_client.exceptions.ParameterNotFound:
            continue
        if value and value.startswith("ami-"):
            return value
    return None


def newest_canonical_ami(ec2_client) -> str:
    images = ec2_client.describe_images(
        Owners=[CANONICAL_OWNER_ID],
        Filters=ec2_filters(
            name=UBUNTU_IMAGE_NAME_PATTERN,
            architecture="x86_64",
            root_device_type="ebs",
            virtualization_type="hvm",
        ),
    )["Images"]
    if not images:
        raise RuntimeError("No Ubuntu 22.04 AMIs found from Canonical in this region.")
    return max(images, key=lambda image: image["CreationDate"])["ImageId"]


def resolve_ubuntu_ami(ssm_client, ec2_client) -> str:
    """Prefer the SSM-published LTS image; search Canonical's images otherwise."""
    return published_ubuntu_ami(ssm_client) or newest_canonical_ami(ec2_client)
