import os
import shutil
from dataclasses import dataclass
from typing import Callable, Optional

from utils.config import InstallSettings
from utils.constants import CONFIG_SUBDIR, HDFS_DATA_SUBDIR


class JavaNotFoundError(RuntimeError):
    pass


@dataclass(frozen=True)
class InstallationTarget:
    """Resolved parameters of one install run. Built once, never mutated."""

    version: str
    install_dir: str
    java_home: str
    mirrors: tuple[str, ...]
    download_dir: str
    user: str
    group: str
    profile_script: str

    @property
    def release_name(self) -> str:
        return f"hadoop-{self.version}"

    @property
    def tarball_name(self) -> str:
        return f"{self.release_name}.tar.gz"

    @property
    def tarball_path(self) -> str:
        return os.path.join(self.download_dir, self.tarball_name)

    @property
    def download_urls(self) -> list[str]:
        return [
            f"{mirror.rstrip('/')}/{self.release_name}/{self.tarball_name}"
            for mirror in self.mirrors
        ]

    # The tarball unpacks to hadoop-<version>/ beside the final install dir
    @property
    def extract_parent(self) -> str:
        return os.path.dirname(os.path.normpath(self.install_dir))

    @property
    def extracted_dir(self) -> str:
        return os.path.join(self.extract_parent, self.release_name)

    @property
    def config_dir(self) -> str:
        return os.path.join(self.install_dir, CONFIG_SUBDIR)

    @property
    def namenode_dir(self) -> str:
        return os.path.join(self.install_dir, HDFS_DATA_SUBDIR, "namenode")

    @property
    def datanode_dir(self) -> str:
        return os.path.join(self.install_dir, HDFS_DATA_SUBDIR, "datanode")

    @property
    def hdfs_bin(self) -> str:
        return os.path.join(self.install_dir, "bin", "hdfs")

    @property
    def hadoop_bin(self) -> str:
        return os.path.join(self.install_dir, "bin", "hadoop")


def detect_java_home(
    which: Callable[[str], Optional[str]] = shutil.which,
    realpath: Callable[[str], str] = os.path.realpath,
) -> str:
    """Resolve JAVA_HOME from the java executable on PATH.

    The executable is usually a chain of alternatives symlinks, so follow it
    to the real binary and strip the trailing ``bin/java``.
    """
    java = which("java")
    if not java:
        raise JavaNotFoundError("java executable not found on PATH")
    return os.path.dirname(os.path.dirname(realpath(java)))


def resolve_target(settings: InstallSettings, java_home: Optional[str] = None) -> InstallationTarget:
    return InstallationTarget(
        version=settings.version,
        install_dir=os.path.normpath(settings.install_dir),
        java_home=java_home or detect_java_home(),
        mirrors=tuple(settings.mirrors),
        download_dir=settings.download_dir,
        user=settings.user,
        group=settings.group,
        profile_script=settings.profile_script,
    )
