import os
from dataclasses import dataclass

import boto3
from dotenv import load_dotenv

from utils.constants import (
    DOWNLOAD_DIR,
    HADOOP_INSTALL_DIR,
    HADOOP_MIRRORS,
    HADOOP_VERSION,
    JAVA_PACKAGE,
    PROFILE_SCRIPT,
    SERVICE_GROUP,
    SERVICE_USER,
)


@dataclass(frozen=True)
class InstallSettings:
    """Operator-facing knobs for one install run, before any host detection."""

    version: str = HADOOP_VERSION
    install_dir: str = HADOOP_INSTALL_DIR
    mirrors: tuple[str, ...] = tuple(HADOOP_MIRRORS)
    download_dir: str = DOWNLOAD_DIR
    user: str = SERVICE_USER
    group: str = SERVICE_GROUP
    java_package: str = JAVA_PACKAGE
    profile_script: str = PROFILE_SCRIPT


def _split_list(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def load_install_settings() -> InstallSettings:

    load_dotenv() # Load environment variables from a .env file if present

    mirrors = _split_list(os.getenv("HADOOP_MIRRORS", ""))
    return InstallSettings(
        version=os.getenv("HADOOP_VERSION", HADOOP_VERSION),
        install_dir=os.getenv("HADOOP_INSTALL_DIR", HADOOP_INSTALL_DIR),
        mirrors=mirrors or tuple(HADOOP_MIRRORS),
        download_dir=os.getenv("HADOOP_DOWNLOAD_DIR", DOWNLOAD_DIR),
        user=os.getenv("HADOOP_USER", SERVICE_USER),
        group=os.getenv("HADOOP_GROUP", SERVICE_GROUP),
        java_package=os.getenv("JAVA_PACKAGE", JAVA_PACKAGE),
    )


def make_session(region: str = None):

    load_dotenv()

    region = region or os.getenv("AWS_REGION", "us-east-1")
    access = os.getenv("AWS_ACCESS_KEY_ID")
    secret = os.getenv("AWS_SECRET_ACCESS_KEY")

    # Explicit credentials take precedence over the CLI profile
    if access and secret:
        return boto3.Session(
            aws_access_key_id=access,
            aws_secret_access_key=secret,
            aws_session_token=os.getenv("AWS_SESSION_TOKEN"),
            region_name=region,
        )

    # Otherwise, use AWS CLI profile from ~/.aws/credentials
    return boto3.Session(profile_name=os.getenv("AWS_PROFILE", "default"), region_name=region)
