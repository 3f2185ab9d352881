import os


KEY_NAME = "labsuser"
DEFAULT_KEY_PATH = os.path.normpath(
    os.path.join(os.path.dirname(__file__), "..", f"{KEY_NAME}.pem")
)
INSTALL_SG_NAME = "hadoop-install-sg"
UBUNTU_SSM_AMI_PARAMS = [
    "/aws/service/canonical/ubuntu/server/22.04/stable/current/amd64/hvm/ebs-gp3/ami-id",
    "/aws/service/canonical/ubuntu/server/22.04/stable/current/amd64/hvm/ebs-gp2/ami-id",
    "/aws/service/canonical/ubuntu/server/24.04/stable/current/amd64/hvm/ebs-gp3/ami-id",
    "/aws/service/canonical/ubuntu/server/24.04/stable/current/amd64/hvm/ebs-gp2/ami-id",
    "/aws/service/canonical/ubuntu/server/20.04/stable/current/amd64/hvm/ebs-gp3/ami-id",
    "/aws/service/canonical/ubuntu/server/20.04/stable/current/amd64/hvm/ebs-gp2/ami-id",
]
CANONICAL_OWNER_ID = "099720109477"
UBUNTU_IMAGE_NAME_PATTERN = "ubuntu/images/hvm-ssd/ubuntu-jammy-22.04-amd64-server-*"

# ----- Installer defaults -----
HADOOP_VERSION = "2.7.3"
HADOOP_INSTALL_DIR = "/usr/local/hadoop"
HADOOP_MIRRORS = [
    "https://dlcdn.apache.org/hadoop/common",
    "https://archive.apache.org/dist/hadoop/common",
]
DOWNLOAD_DIR = "/tmp"
JAVA_PACKAGE = "openjdk-11-jdk"
SYSTEM_PACKAGES = ["wget", "ssh", "rsync"]
SERVICE_USER = "hduser"
SERVICE_GROUP = "hadoop"
PROFILE_SCRIPT = "/etc/profile.d/hadoop.sh"

# Used only by --dry-run when java is not installed yet
DEFAULT_JAVA_HOME = "/usr/lib/jvm/java-11-openjdk-amd64"

# groupadd/useradd exit status when the name is already taken
ACCOUNT_EXISTS_EXIT_CODE = 9

# ----- Rendered configuration values -----
HDFS_DEFAULT_URI = "hdfs://localhost:9000"
DFS_REPLICATION = 1
MAPREDUCE_FRAMEWORK = "yarn"
YARN_AUX_SERVICES = "mapreduce_shuffle"
YARN_RESOURCEMANAGER_HOSTNAME = "localhost"

# Layout inside the install dir
CONFIG_SUBDIR = os.path.join("etc", "hadoop")
HDFS_DATA_SUBDIR = os.path.join("hadoop_data", "hdfs")

# ----- Remote bootstrap -----
DEFAULT_REMOTE_USER = "ubuntu"
INSTALLER_VENV = "/opt/hadoop-installer"
INSTALL_READY_LOG = "/var/log/hadoop-install-ready.log"
CLOUD_INIT_OUTPUT_LOG = "/var/log/cloud-init-output.log"
NAMENODE_UI_PORT = 50070
