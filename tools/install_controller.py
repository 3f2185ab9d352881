import argparse
import os
import stat
import subprocess
import sys
import time

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from installer.steps import run_command
from utils.constants import (
    CLOUD_INIT_OUTPUT_LOG,
    DEFAULT_KEY_PATH,
    DEFAULT_REMOTE_USER,
    HADOOP_INSTALL_DIR,
    HDFS_DEFAULT_URI,
    INSTALL_READY_LOG,
    PROFILE_SCRIPT,
)

SSH_OPTIONS = ["-o", "StrictHostKeyChecking=no", "-o", "BatchMode=yes", "-o", "ConnectTimeout=20"]

# Non-interactive ssh sessions skip /etc/profile.d, so source the Hadoop exports explicitly
HADOOP_ENV_PREFIX = f". {PROFILE_SCRIPT} 2>/dev/null"

PROGRESS_STATUS_CMD = (
    f"test -d {HADOOP_INSTALL_DIR} && echo '  Hadoop unpacked' || echo '  Installing Hadoop...'; "
    f"tail -n 3 {CLOUD_INIT_OUTPUT_LOG} 2>/dev/null || true"
)


def run_remote(host: str, key_path: str, user: str, command: str,
               hadoop_env: bool = False) -> subprocess.CompletedProcess:
    if hadoop_env:
        command = f"{HADOOP_ENV_PREFIX}; {command}"
    return run_command(["ssh", "-i", key_path, *SSH_OPTIONS, f"{user}@{host}", command])


def wait_for_bootstrap(host: str, key: str, user: str, timeout_sec: int = 900, poll_sec: int = 10) -> None:
    """Poll for the readiness marker, showing cloud-init progress every sixth try."""
    print(f"Waiting for install to complete (timeout: {timeout_sec}s)...")
    start_time = time.time()
    attempt = 0

    while time.time() - start_time < timeout_sec:
        attempt += 1
        elapsed = int(time.time() - start_time)

        try:
            run_remote(host, key, user, f"test -f {INSTALL_READY_LOG}")
        except subprocess.CalledProcessError:
            pass
        else:
            print(f"Install complete! (took {elapsed}s)")
            return

        if attempt % 6 == 0:
            try:
                status = run_remote(host, key, user, PROGRESS_STATUS_CMD).stdout.strip()
                print(f"\nProgress ({elapsed}s elapsed):\n{status}\n")
            except subprocess.CalledProcessError:
                print(f"  Still waiting... ({elapsed}s elapsed)")
        time.sleep(poll_sec)

    raise RuntimeError(f"Install did not complete within {timeout_sec} seconds")


# Check the installed configuration and print the release banner.
def verify_installation(host: str, key: str, user: str) -> str:
    print("Verifying installation...")
    default_fs = run_remote(host, key, user, "hdfs getconf -confKey fs.defaultFS", hadoop_env=True).stdout.strip()
    if default_fs != HDFS_DEFAULT_URI:
        raise RuntimeError(f"fs.defaultFS is {default_fs!r}, expected {HDFS_DEFAULT_URI!r}")

    banner = run_remote(host, key, user, "hadoop version", hadoop_env=True).stdout.strip()
    version_line = banner.splitlines()[0] if banner else ""
    print(f"fs.defaultFS: {default_fs}")
    print(f"Release: {version_line}")
    return version_line


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", required=True, help="Public IP of the instance")
    parser.add_argument("--key", default=DEFAULT_KEY_PATH, help="Private key for SSH")
    parser.add_argument("--user", default=DEFAULT_REMOTE_USER)
    parser.add_argument("--bootstrap-timeout-sec", type=int, default=900)
    args = parser.parse_args()

    # ssh refuses keys readable by others
    os.chmod(args.key, stat.S_IRUSR | stat.S_IWUSR)

    try:
        wait_for_bootstrap(args.host, args.key, args.user, timeout_sec=args.bootstrap_timeout_sec)
        verify_installation(args.host, args.key, args.user)
    except (RuntimeError, subprocess.CalledProcessError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
