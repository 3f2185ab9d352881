import argparse
from dataclasses import replace
from urllib.request import urlopen

from installer.user_data import build_install_user_data
from utils.aws import ensure_security_group, find_default_network, open_tcp_port, resolve_ubuntu_ami
from utils.config import load_install_settings, make_session
from utils.constants import INSTALL_SG_NAME, KEY_NAME, NAMENODE_UI_PORT


def get_caller_cidr() -> str:
    my_public_ip = urlopen("https://checkip.amazonaws.com", timeout=5).read().decode().strip()
    return f"{my_public_ip}/32"


def ensure_install_sg(ec2_client, vpc_id: str, cidr_ip: str) -> str:
    """SSH and the NameNode web UI, reachable from the operator's address only."""
    sg_id = ensure_security_group(
        ec2_client, vpc_id, INSTALL_SG_NAME, "Security group for single-node Hadoop install"
    )
    for port in (22, NAMENODE_UI_PORT):
        open_tcp_port(ec2_client, sg_id, port, cidr_ip)
    return sg_id


def launch_install_instance(ec2_client, ami_id: str, subnet_id: str, sg_id: str,
                            user_data: str, instance_type: str = "t2.large") -> str:
    resp = ec2_client.run_instances(
        ImageId=ami_id,
        InstanceType=instance_type,
        MinCount=1,
        MaxCount=1,
        KeyName=KEY_NAME,
        InstanceInitiatedShutdownBehavior="stop",
        SecurityGroupIds=[sg_id],
        SubnetId=subnet_id,
        UserData=user_data,
        TagSpecifications=[{
            "ResourceType": "instance",
            "Tags": [{"Key": "Name", "Value": "hadoop-single-node"}],
        }],
    )
    return resp["Instances"][0]["InstanceId"]


def wait_for_public_ip(ec2_client, instance_id: str) -> str:
    ec2_client.get_waiter("instance_running").wait(InstanceIds=[instance_id])
    reservation = ec2_client.describe_instances(InstanceIds=[instance_id])["Reservations"][0]
    return reservation["Instances"][0].get("PublicIpAddress")


def main():
    ap = argparse.ArgumentParser(description="Launch one Ubuntu instance that installs Hadoop at boot")
    ap.add_argument("--source", required=True, help="pip requirement for this installer (VCS or sdist URL)")
    ap.add_argument("--region", default=None)
    ap.add_argument("--instance-type", default="t2.large")
    ap.add_argument("--version", dest="hadoop_version", default=None, help="Hadoop release to install")
    args = ap.parse_args()

    settings = load_install_settings()
    if args.hadoop_version:
        settings = replace(settings, version=args.hadoop_version)

    sess = make_session(args.region)
    ec2_client = sess.client("ec2")
    ssm_client = sess.client("ssm")

    vpc_id, subnet_id = find_default_network(ec2_client)
    sg_id = ensure_install_sg(ec2_client, vpc_id, get_caller_cidr())
    ami_id = resolve_ubuntu_ami(ssm_client, ec2_client)

    user_data = build_install_user_data(args.source, settings)
    instance_id = launch_install_instance(ec2_client, ami_id, subnet_id, sg_id, user_data, args.instance_type)
    print(f"[EC2] Launched {instance_id}, waiting for it to run...")
    public_ip = wait_for_public_ip(ec2_client, instance_id)

    print("Hadoop install instance launched!")
    print(f"Instance ID: {instance_id}")
    print(f"Public IP: {public_ip}")
    print(f"Follow progress with: python tools/install_controller.py --host {public_ip}")


if __name__ == "__main__":
    main()
