import os
from dataclasses import dataclass
from textwrap import dedent
from xml.sax.saxutils import escape

from installer.target import InstallationTarget
from utils.constants import (
    DFS_REPLICATION,
    HDFS_DEFAULT_URI,
    MAPREDUCE_FRAMEWORK,
    YARN_AUX_SERVICES,
    YARN_RESOURCEMANAGER_HOSTNAME,
)


@dataclass(frozen=True)
class ConfigFile:
    path: str
    content: str


PROPERTY_TEMPLATE = """\
  <property>
    <name>{name}</name>
    <value>{value}</value>
  </property>
"""


# Render a Hadoop <configuration> document; property order is preserved.
def render_configuration(properties: list[tuple[str, object]]) -> str:
    body = "".join(
        PROPERTY_TEMPLATE.format(name=escape(name), value=escape(str(value)))
        for name, value in properties
    )
    return f'<?xml version="1.0"?>\n<configuration>\n{body}</configuration>\n'


def core_site_properties(target: InstallationTarget) -> list[tuple[str, object]]:
    return [("fs.defaultFS", HDFS_DEFAULT_URI)]


def hdfs_site_properties(target: InstallationTarget) -> list[tuple[str, object]]:
    return [
        ("dfs.replication", DFS_REPLICATION),
        ("dfs.namenode.name.dir", f"file://{target.namenode_dir}"),
        ("dfs.datanode.data.dir", f"file://{target.datanode_dir}"),
    ]


def mapred_site_properties(target: InstallationTarget) -> list[tuple[str, object]]:
    return [("mapreduce.framework.name", MAPREDUCE_FRAMEWORK)]


def yarn_site_properties(target: InstallationTarget) -> list[tuple[str, object]]:
    return [
        ("yarn.nodemanager.aux-services", YARN_AUX_SERVICES),
        ("yarn.resourcemanager.hostname", YARN_RESOURCEMANAGER_HOSTNAME),
    ]


CONFIG_DOCUMENTS = [
    ("core-site.xml", core_site_properties),
    ("hdfs-site.xml", hdfs_site_properties),
    ("mapred-site.xml", mapred_site_properties),
    ("yarn-site.xml", yarn_site_properties),
]


def render_config_files(target: InstallationTarget) -> list[ConfigFile]:
    return [
        ConfigFile(
            path=os.path.join(target.config_dir, filename),
            content=render_configuration(build_properties(target)),
        )
        for filename, build_properties in CONFIG_DOCUMENTS
    ]


def render_profile_script(target: InstallationTarget) -> ConfigFile:
    content = dedent(
        f"""\
        # Java
        export JAVA_HOME={target.java_home}

        # Hadoop
        export HADOOP_HOME={target.install_dir}
        export HADOOP_CONF_DIR=$HADOOP_HOME/etc/hadoop
        export PATH=$PATH:$HADOOP_HOME/bin:$HADOOP_HOME/sbin
        """
    )
    return ConfigFile(path=target.profile_script, content=content)


# Whole-file overwrite; earlier content is never merged.
def write_config_file(config: ConfigFile) -> None:
    os.makedirs(os.path.dirname(config.path), exist_ok=True)
    with open(config.path, "w", encoding="utf-8") as f:
        f.write(config.content)
