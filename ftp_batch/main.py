"""Command line entry point for the FTP batch dispatcher.

Wires profiles, credentials and logging to the dispatcher and the
credential check.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config.paths import get_log_file_path
from .config.profiles import ConnectionProfile, ProfileManager
from .dispatcher import BatchDispatcher, Operation, OperationParameters
from .ftp.credential_check import check_credentials
from .ftp.exceptions import BatchOperationError, FTPError
from .items import Item
from .utils.logging import setup_logging, get_logger
from .utils.validators import validate_host, validate_port, validate_timeout

SECURE_CHOICES = ("none", "explicit", "implicit")


def _read_items(source: Optional[str]) -> List[Item]:
    """
    Read input records from a JSON file, "-" for stdin, or default to one empty record.

    Raises:
        ValueError: If the input is not valid JSON, or not an object or
            an array of objects
    """
    if not source:
        return [Item()]
    if source == "-":
        data = json.load(sys.stdin)
    else:
        with open(source, "r", encoding="utf-8") as f:
            data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"Input must be a JSON object or array of objects, got {type(data).__name__}")
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Input record {index} must be a JSON object, got {type(entry).__name__}")
    return [Item.from_dict(entry) for entry in data]


def _apply_verbose(config, args) -> None:
    # Protocol tracing is logged at DEBUG
    if config.verbose_logging:
        setup_logging(level=logging.DEBUG, log_file=args.log_file)


def _write_items(items: List[Item]) -> None:
    json.dump([item.to_dict() for item in items], sys.stdout, indent=2)
    sys.stdout.write("\n")


def cmd_run(args, profiles: ProfileManager) -> int:
    logger = get_logger()
    config = profiles.resolve(args.profile, password=args.password)
    _apply_verbose(config, args)
    parameters = OperationParameters(
        operation=args.operation,
        path=args.path,
        folder_path=args.folder_path,
        binary_property=args.binary_property,
    )
    items = _read_items(args.input)

    dispatcher = BatchDispatcher(
        config,
        parameters,
        continue_on_fail=args.continue_on_fail,
        node_name=args.node_name,
    )
    try:
        results = dispatcher.run(items)
    except BatchOperationError as e:
        logger.error(str(e))
        if e.item_index is not None:
            _write_items(e.results)
        return 1
    except FTPError as e:
        logger.error(str(e))
        return 1

    _write_items(results)
    return 0


def cmd_test(args, profiles: ProfileManager) -> int:
    config = profiles.resolve(args.profile, password=args.password)
    _apply_verbose(config, args)
    result = check_credentials(config)
    print(json.dumps(result.to_dict()))
    return 0 if result.ok else 1


def cmd_profile_save(args, profiles: ProfileManager) -> int:
    for is_valid, error in (
        validate_host(args.host),
        validate_port(args.port),
        validate_timeout(args.timeout),
    ):
        if not is_valid:
            print(error, file=sys.stderr)
            return 2

    profile = ConnectionProfile(
        host=args.host.strip(),
        port=args.port,
        user=args.user,
        secure=args.secure != "none",
        implicit_tls=args.secure == "implicit",
        ignore_tls_issues=args.ignore_tls_issues,
        verbose_logging=args.verbose_logging,
        certificate=args.certificate_file.read_text() if args.certificate_file else "",
        private_key=args.private_key_file.read_text() if args.private_key_file else "",
        timeout=args.timeout,
    )
    profiles.save(args.name, profile, password=args.password)
    print(f"Saved profile '{args.name}'")
    return 0


def cmd_profile_list(args, profiles: ProfileManager) -> int:
    for name in profiles.names():
        profile = profiles.get(name)
        port = profile.port or "default"
        print(f"{name}\t{profile.user}@{profile.host}:{port}")
    return 0


def cmd_profile_delete(args, profiles: ProfileManager) -> int:
    if not profiles.delete(args.name):
        print(f"No profile named '{args.name}'", file=sys.stderr)
        return 1
    print(f"Deleted profile '{args.name}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ftp-batch",
        description="Run one FTP/FTPS operation for every input record.",
    )
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", type=Path, nargs="?", const=True, default=None,
                        help="Log to FILE, or to the application log file when FILE is omitted")
    parser.add_argument("--profiles-file", type=Path, default=None,
                        help="Profiles JSON file (default: platform config directory)")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a batch")
    run.add_argument("--profile", required=True)
    run.add_argument("--password", default=None, help="Overrides the keyring password")
    run.add_argument("--operation", required=True, choices=[op.value for op in Operation])
    run.add_argument("--path", default="", help="Remote file path template")
    run.add_argument("--folder-path", default="", help="Remote folder path template")
    run.add_argument("--binary-property", default="data")
    run.add_argument("--input", default=None, help="JSON file of input records, - for stdin")
    run.add_argument("--continue-on-fail", action="store_true")
    run.add_argument("--node-name", default="Basic FTP")
    run.set_defaults(func=cmd_run)

    test = sub.add_parser("test", help="Check that a profile can connect and log in")
    test.add_argument("--profile", required=True)
    test.add_argument("--password", default=None)
    test.set_defaults(func=cmd_test)

    profile = sub.add_parser("profile", help="Manage connection profiles")
    profile_sub = profile.add_subparsers(dest="profile_command", required=True)

    save = profile_sub.add_parser("save", help="Create or replace a profile")
    save.add_argument("name")
    save.add_argument("--host", required=True)
    save.add_argument("--port", type=int, default=0, help="0 uses the protocol default")
    save.add_argument("--user", default="anonymous")
    save.add_argument("--password", default=None, help="Stored in the system keyring")
    save.add_argument("--secure", choices=SECURE_CHOICES, default="explicit")
    save.add_argument("--ignore-tls-issues", action="store_true")
    save.add_argument("--verbose-logging", action="store_true")
    save.add_argument("--certificate-file", type=Path, default=None)
    save.add_argument("--private-key-file", type=Path, default=None)
    save.add_argument("--timeout", type=int, default=30)
    save.set_defaults(func=cmd_profile_save)

    listing = profile_sub.add_parser("list", help="List saved profiles")
    listing.set_defaults(func=cmd_profile_list)

    delete = profile_sub.add_parser("delete", help="Delete a profile")
    delete.add_argument("name")
    delete.set_defaults(func=cmd_profile_delete)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_file is True:
        args.log_file = get_log_file_path()
    logger = setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)
    profiles = ProfileManager(config_path=args.profiles_file)

    try:
        return args.func(args, profiles)
    except KeyError as e:
        logger.error(e.args[0] if e.args else str(e))
        return 2
    except ValueError as e:
        logger.error(f"Invalid value: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
