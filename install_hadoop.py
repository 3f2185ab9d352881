import argparse
import os
import sys
from dataclasses import replace

from installer.plan import build_install_plan, build_prepare_plan
from installer.provisioner import Provisioner, StepFailed
from installer.target import JavaNotFoundError, detect_java_home, resolve_target
from utils.config import load_install_settings
from utils.constants import DEFAULT_JAVA_HOME


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Install a single-node Hadoop on this Ubuntu host")
    parser.add_argument("--version", dest="hadoop_version", help="Hadoop release to install")
    parser.add_argument("--install-dir", help="Final location of the Hadoop tree")
    parser.add_argument("--mirror", action="append", dest="mirrors",
                        help="Base download URL; repeat to add fallbacks (tried in order)")
    parser.add_argument("--download-dir", help="Where the tarball is stored")
    parser.add_argument("--user", help="Service account that owns and runs Hadoop")
    parser.add_argument("--group", help="Group of the service account")
    parser.add_argument("--java-package", help="apt package providing the Java runtime")
    parser.add_argument("--java-home", help="Skip detection and use this JAVA_HOME")
    parser.add_argument("--skip-ssh", action="store_true", help="Do not set up passwordless ssh")
    parser.add_argument("--dry-run", action="store_true", help="Print the steps without running them")
    return parser.parse_args(argv)


def apply_overrides(settings, args):
    overrides = {
        "version": args.hadoop_version,
        "install_dir": args.install_dir,
        "mirrors": tuple(args.mirrors) if args.mirrors else None,
        "download_dir": args.download_dir,
        "user": args.user,
        "group": args.group,
        "java_package": args.java_package,
    }
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def resolve_java_home(args) -> str:
    if args.java_home:
        return args.java_home
    try:
        return detect_java_home()
    except JavaNotFoundError:
        if not args.dry_run:
            raise
        print(f"Warning: java not installed yet, assuming {DEFAULT_JAVA_HOME}", file=sys.stderr)
        return DEFAULT_JAVA_HOME


def main(argv=None) -> int:
    args = parse_args(argv)

    if not args.dry_run and os.geteuid() != 0:
        print("This script must be run as root. Please use sudo.", file=sys.stderr)
        return 1

    settings = apply_overrides(load_install_settings(), args)
    provisioner = Provisioner(dry_run=args.dry_run)

    try:
        print("Installing dependencies...")
        provisioner.run(build_prepare_plan(settings))

        target = resolve_target(settings, java_home=resolve_java_home(args))
        print(f"Installing Hadoop {target.version} to {target.install_dir} (JAVA_HOME={target.java_home})")
        report = provisioner.run(
            build_install_plan(target, runner=provisioner.runner, include_ssh=not args.skip_ssh)
        )
    except (StepFailed, JavaNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        print("Dry run complete, nothing was changed.")
        return 0

    print(
        f"Hadoop installation and configuration completed successfully! "
        f"({len(report.completed)} done, {len(report.tolerated)} already present, "
        f"{len(report.skipped)} skipped)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
