import shlex
from textwrap import dedent

from utils.config import InstallSettings
from utils.constants import INSTALL_READY_LOG, INSTALLER_VENV


def installer_arguments(settings: InstallSettings) -> list[str]:
    args = [
        "--version", settings.version,
        "--install-dir", settings.install_dir,
        "--download-dir", settings.download_dir,
        "--user", settings.user,
        "--group", settings.group,
        "--java-package", settings.java_package,
    ]
    for mirror in settings.mirrors:
        args += ["--mirror", mirror]
    return args


def build_install_user_data(source: str, settings: InstallSettings) -> str:
    """Cloud-init script that installs this tool on a fresh host and runs it.

    ``source`` is anything pip accepts (a VCS URL, an sdist URL, a path).
    The readiness marker is written only after the installer exits 0.
    """
    install_cmd = shlex.join([f"{INSTALLER_VENV}/bin/hadoop-install", *installer_arguments(settings)])
    return dedent(
        f"""\
        #!/bin/bash
        set -euxo pipefail

        export DEBIAN_FRONTEND=noninteractive

        # Python tooling for the installer itself
        apt-get update -y
        apt-get install -y --no-install-recommends python3-venv python3-pip git ca-certificates

        python3 -m venv {INSTALLER_VENV}
        {INSTALLER_VENV}/bin/pip install --upgrade pip
        {INSTALLER_VENV}/bin/pip install {shlex.quote(source)}

        {install_cmd}

        # Readiness marker for the controller
        echo "hadoop install complete" > {INSTALL_READY_LOG}
        """
    )
