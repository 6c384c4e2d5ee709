"""
secretpatch/cli.py — Command-line front end for secret updates and reverts.

Usage:
    secretpatch update payments/db 'database.host=new.example.com,database.port=5433'
    secretpatch update payments/db 'message="hello,world"' --backup
    secretpatch update payments/db '' --remove legacy.token --dry-run
    secretpatch revert payments/db --versions-back 1 --backup
    secretpatch --backend vault revert payments/db --version-id 4

Configuration comes from the environment (see secretpatch/config.py);
flags given here take precedence.
"""
import argparse
import logging
import sys

from secretpatch.audit import AuditTrail
from secretpatch.backends import get_backend
from secretpatch.config import BACKENDS, LOG_LEVELS, Settings, load_settings
from secretpatch.errors import ParseError
from secretpatch.notify import send_notification
from secretpatch.operations import RevertRequest, UpdateRequest, run_operation
from secretpatch.results import Operation, OperationResult, OperationStatus
from secretpatch.update_string import parse_key_list

log = logging.getLogger("secretpatch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secretpatch",
        description="Partial updates and reverts for JSON secrets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  secretpatch update app/config 'apiKey=abc,environment=dev'
  secretpatch update app/config 'database.host=new.com' --backup
  secretpatch revert app/config --versions-back 2 --dry-run
        """,
    )
    parser.add_argument("--backend", choices=BACKENDS, help="Secrets backend (default: from env, else aws)")
    parser.add_argument("--region", help="AWS region (for --backend aws)")
    parser.add_argument("--profile", help="AWS profile name (for --backend aws)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Logging level")
    parser.add_argument("--audit-log", help="Append JSON audit events to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    update = sub.add_parser(Operation.UPDATE.value, help="Apply an update string to a secret")
    update.add_argument("secret_name", help="Secret name or path")
    update.add_argument("update_string", help="key=value[,key=value...]; quote values containing commas")
    update.add_argument(
        "--remove",
        action="append",
        default=[],
        metavar="KEY[,KEY...]",
        help="Remove keys (dot-paths allowed); may be repeated",
    )
    update.add_argument(
        "--no-nested",
        action="store_true",
        help="Treat dotted keys as literal top-level keys",
    )
    update.add_argument("--backup", action="store_true", help="Copy the current value first")
    update.add_argument("--dry-run", action="store_true", help="Show masked changes, write nothing")

    revert = sub.add_parser(Operation.REVERT.value, help="Restore a previous version of a secret")
    revert.add_argument("secret_name", help="Secret name or path")
    target = revert.add_mutually_exclusive_group()
    target.add_argument("--version-id", help="Exact version id to restore")
    target.add_argument(
        "--versions-back",
        type=int,
        help="Restore the version N positions older than current (default: 1)",
    )
    revert.add_argument("--backup", action="store_true", help="Copy the current value first")
    revert.add_argument("--dry-run", action="store_true", help="Show a masked preview, write nothing")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.backend:
        settings.backend = args.backend
    if args.region:
        settings.aws_region = args.region
    if args.profile:
        settings.aws_profile = args.profile
    if args.log_level:
        settings.log_level = args.log_level
    if args.audit_log:
        settings.audit_log = args.audit_log
    return settings


def build_request(args: argparse.Namespace, settings: Settings) -> UpdateRequest | RevertRequest:
    if args.command == Operation.UPDATE.value:
        removals: list[str] = []
        for chunk in args.remove:
            removals.extend(parse_key_list(chunk))
        return UpdateRequest(
            secret_name=args.secret_name,
            update_string=args.update_string,
            remove_keys=removals,
            nested_paths=settings.nested_paths and not args.no_nested,
            backup=args.backup,
            dry_run=args.dry_run,
        )
    return RevertRequest(
        secret_name=args.secret_name,
        version_id=args.version_id,
        versions_back=args.versions_back,
        backup=args.backup,
        dry_run=args.dry_run,
    )


def report(result: OperationResult) -> None:
    log.info(f"{'=' * 60}")
    if result.status is OperationStatus.FAILED:
        log.error(f"[FAIL] {result.summary()}")
        return
    log.info(f"[OK] {result.summary()}")
    if result.preview:
        for line in result.preview.splitlines():
            log.info(f"  {line}")
    if result.backup_name:
        log.info(f"  Backup: {result.backup_name}")


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(load_settings(), args)
    except ValueError as e:
        logging.basicConfig(level=logging.INFO)
        log.error(f"Invalid configuration: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    operation = Operation(args.command)
    try:
        request = build_request(args, settings)
    except ParseError as e:
        log.error(f"Invalid --remove value: {e}")
        sys.exit(1)

    try:
        store = get_backend(settings.backend, settings)
    except Exception as e:
        log.exception(f"Could not initialise {settings.backend} backend: {e}")
        sys.exit(1)

    audit = AuditTrail(settings.audit_log, backend=store.name)
    result = run_operation(operation, store, request, audit=audit)
    report(result)

    if result.status is OperationStatus.SUCCESS:
        send_notification(f":white_check_mark: {result.summary()}", settings.slack_webhook_url)
    elif result.status is OperationStatus.FAILED:
        send_notification(f":x: {result.summary()}", settings.slack_webhook_url)
        sys.exit(1)


if __name__ == "__main__":
    main()
