import os
import pwd
import shutil
import subprocess
import tarfile
import zlib
from typing import Callable

from installer.provisioner import describe_exit
from installer.steps import Step, run_command
from installer.target import InstallationTarget
from installer.templates import render_config_files, render_profile_script, write_config_file
from utils.config import InstallSettings
from utils.constants import ACCOUNT_EXISTS_EXIT_CODE, SYSTEM_PACKAGES

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def hadoop_env(target: InstallationTarget) -> dict[str, str]:
    return {"JAVA_HOME": target.java_home, "HADOOP_HOME": target.install_dir}


# Walk every member header so a truncated download is rejected, like `tar -tzf`.
def is_valid_tarball(path: str) -> bool:
    if not os.path.isfile(path):
        return False
    try:
        with tarfile.open(path) as tar:
            tar.getmembers()
    except (tarfile.TarError, EOFError, zlib.error):
        return False
    return True


# Append a line unless the file already holds it verbatim.
def append_line_once(path: str, line: str) -> None:
    existing = ""
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            existing = f.read()
    if line in existing.splitlines():
        return
    with open(path, "a", encoding="utf-8") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(line + "\n")


def user_ssh_dir(user: str) -> str:
    try:
        home = pwd.getpwnam(user).pw_dir
    except KeyError:
        # Not created yet (dry run); useradd -m puts it here
        home = os.path.join("/home", user)
    return os.path.join(home, ".ssh")


def download_tarball(target: InstallationTarget, runner: Callable = run_command) -> None:
    """Fetch the release tarball, trying each mirror in order."""
    os.makedirs(target.download_dir, exist_ok=True)
    failures = []
    for url in target.download_urls:
        print(f"Downloading {url}...")
        try:
            runner(["wget", "-q", "--tries=3", "--timeout=30", "-O", target.tarball_path, url])
        except subprocess.CalledProcessError as e:
            failures.append(f"{url} ({describe_exit(e)})")
            continue
        if is_valid_tarball(target.tarball_path):
            return
        failures.append(f"{url} (not a valid tarball)")

    # wget -O leaves an empty or partial file behind
    if os.path.exists(target.tarball_path):
        os.remove(target.tarball_path)
    raise RuntimeError("download failed from every mirror: " + "; ".join(failures))


def create_data_dirs(target: InstallationTarget) -> None:
    os.makedirs(target.namenode_dir, exist_ok=True)
    os.makedirs(target.datanode_dir, exist_ok=True)


def install_profile_script(target: InstallationTarget) -> None:
    profile = render_profile_script(target)
    write_config_file(profile)
    os.chmod(profile.path, 0o755)


def pin_java_home(target: InstallationTarget) -> None:
    # start-dfs.sh reaches the daemons over ssh, where the login profile is not sourced
    append_line_once(
        os.path.join(target.config_dir, "hadoop-env.sh"),
        f"export JAVA_HOME={target.java_home}",
    )


def generate_ssh_key(target: InstallationTarget, runner: Callable = run_command) -> None:
    ssh_dir = user_ssh_dir(target.user)
    runner(["sudo", "-u", target.user, "mkdir", "-p", ssh_dir])
    runner([
        "sudo", "-u", target.user,
        "ssh-keygen", "-t", "rsa", "-N", "", "-f", os.path.join(ssh_dir, "id_rsa"),
    ])


def authorize_ssh_key(target: InstallationTarget) -> None:
    ssh_dir = user_ssh_dir(target.user)
    with open(os.path.join(ssh_dir, "id_rsa.pub"), encoding="utf-8") as f:
        public_key = f.read().strip()
    authorized_keys = os.path.join(ssh_dir, "authorized_keys")
    append_line_once(authorized_keys, public_key)
    shutil.chown(authorized_keys, target.user, target.group)


def secure_ssh_dir(target: InstallationTarget) -> None:
    ssh_dir = user_ssh_dir(target.user)
    os.chmod(ssh_dir, 0o700)
    os.chmod(os.path.join(ssh_dir, "authorized_keys"), 0o600)


def build_prepare_plan(settings: InstallSettings) -> list[Step]:
    """Steps that must finish before JAVA_HOME can be detected."""
    return [
        Step("update-packages", ["apt-get", "update", "-y"], env=APT_ENV),
        Step(
            "install-packages",
            ["apt-get", "install", "-y", settings.java_package, *SYSTEM_PACKAGES],
            env=APT_ENV,
        ),
    ]


def build_install_plan(
    target: InstallationTarget,
    runner: Callable = run_command,
    include_ssh: bool = True,
) -> list[Step]:
    """Ordered install steps.

    Download and extraction come before every configuration write, so a
    failed fetch leaves no half-configured tree behind. Each step is either
    idempotent on its own or carries a skip check, so the whole plan can be
    re-run against an already provisioned host.
    """
    def install_exists() -> bool:
        return os.path.isdir(target.install_dir)

    steps = [
        Step(
            "create-group",
            ["groupadd", target.group],
            tolerated_codes=(ACCOUNT_EXISTS_EXIT_CODE,),
        ),
        Step(
            "create-user",
            ["useradd", "-m", "-g", target.group, "-s", "/bin/bash", target.user],
            tolerated_codes=(ACCOUNT_EXISTS_EXIT_CODE,),
        ),
        Step(
            "download-hadoop",
            lambda: download_tarball(target, runner),
            description=f"download {target.tarball_name} to {target.download_dir}",
            skip_if=lambda: is_valid_tarball(target.tarball_path),
        ),
        Step(
            "extract-hadoop",
            ["tar", "-xzf", target.tarball_path, "-C", target.extract_parent],
            skip_if=install_exists,
        ),
        Step(
            "move-hadoop",
            ["mv", target.extracted_dir, target.install_dir],
            skip_if=install_exists,
        ),
        Step(
            "create-data-dirs",
            lambda: create_data_dirs(target),
            description=f"create {target.namenode_dir} and {target.datanode_dir}",
        ),
        Step(
            "write-profile",
            lambda: install_profile_script(target),
            description=f"write {target.profile_script}",
        ),
    ]

    for config in render_config_files(target):
        steps.append(Step(
            f"write-{os.path.basename(config.path)}",
            lambda config=config: write_config_file(config),
            description=f"write {config.path}",
        ))

    steps += [
        Step(
            "pin-java-home",
            lambda: pin_java_home(target),
            description=f"set JAVA_HOME in {target.config_dir}/hadoop-env.sh",
        ),
        Step(
            "set-ownership",
            ["chown", "-R", f"{target.user}:{target.group}", target.install_dir],
        ),
    ]

    if include_ssh:
        steps += [
            Step(
                "generate-ssh-key",
                lambda: generate_ssh_key(target, runner),
                description=f"generate an RSA key for {target.user}",
                skip_if=lambda: os.path.exists(os.path.join(user_ssh_dir(target.user), "id_rsa")),
            ),
            Step(
                "authorize-ssh-key",
                lambda: authorize_ssh_key(target),
                description=f"add {target.user}'s key to its authorized_keys",
            ),
            Step(
                "secure-ssh-dir",
                lambda: secure_ssh_dir(target),
                description=f"restrict permissions on {target.user}'s .ssh",
            ),
            Step("restart-ssh", ["service", "ssh", "restart"]),
        ]

    steps += [
        Step(
            "format-namenode",
            [
                "sudo", "-u", target.user,
                f"JAVA_HOME={target.java_home}", f"HADOOP_HOME={target.install_dir}",
                target.hdfs_bin, "namenode", "-format", "-nonInteractive",
            ],
            skip_if=lambda: os.path.isdir(os.path.join(target.namenode_dir, "current")),
        ),
        Step("verify-hadoop", [target.hadoop_bin, "version"], env=hadoop_env(target)),
    ]
    return steps
