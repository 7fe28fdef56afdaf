import argparse
import getpass
import sys
from datetime import datetime
from typing import List, Optional

from notion_relay.config import CONFIG_FILE, SECRET_KEYS, load_config, save_secret
from notion_relay.core.exceptions import ConfigError, RunLockedError
from notion_relay.delivery import SentRecordCache
from notion_relay.logger import LogLevel, logger
from notion_relay.runner import RelayRunner
from notion_relay.sync import SyncDirection

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_LOCKED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-relay",
        description="NotionRelay: flag-triggered Notion database sync and report delivery to chat",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
Examples:
  1. Sync both directions:
     notion-relay sync

  2. Only push request quantities/dates to stock:
     notion-relay sync --direction forward

  3. Send report files:
     notion-relay deliver reports/2024-01-01.html --text "Inspection report"

  4. Send everything in the outbox and move sent files to .trash/:
     notion-relay outbox --folder ./outbox --delete-after-send

  5. Full run (sync, then outbox), e.g. from cron:
     notion-relay run

  6. Store the Notion token in the system keyring:
     notion-relay set-secret notion_token
"""
    )
    parser.add_argument("--config", default=CONFIG_FILE, help=f"config file path (default: {CONFIG_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--no-lock", action="store_true", help="do not take the run lock")

    subparsers = parser.add_subparsers(dest="command", help="command")

    sync_parser = subparsers.add_parser("sync", help="run sync passes between the two databases")
    sync_parser.add_argument("--direction", choices=["forward", "reverse", "both"], default="both",
                             help="forward: requests → stock, reverse: stock → requests (default: both)")

    deliver_parser = subparsers.add_parser("deliver", help="send report files to the chat channel")
    deliver_parser.add_argument("files", nargs="+", help="report files")
    deliver_parser.add_argument("--text", help="message text (default: configured message text)")

    outbox_parser = subparsers.add_parser("outbox", help="send every report file in the outbox folder")
    outbox_parser.add_argument("--folder", help="outbox folder (default: configured outbox_dir)")
    outbox_parser.add_argument("--delete-after-send", action="store_true", default=None,
                               help="move sent files to <folder>/.trash/")

    subparsers.add_parser("run", help="sync both directions, then send the outbox")

    secret_parser = subparsers.add_parser("set-secret", help="store a token in the system keyring")
    secret_parser.add_argument("key", choices=SECRET_KEYS, help="secret name")
    secret_parser.add_argument("--value", help="secret value (prompted when omitted)")

    cache_parser = subparsers.add_parser("cache", help="inspect or clear the sent-record cache")
    cache_parser.add_argument("action", choices=["show", "clear"])

    return parser


# ============================================================
# Commands
# ============================================================
def _cmd_sync(runner: RelayRunner, args) -> int:
    if args.direction == "both":
        directions = [SyncDirection.FORWARD, SyncDirection.REVERSE]
    else:
        directions = [SyncDirection(args.direction)]

    runner.config.require_sync()
    with runner.locked():
        results = runner.sync(directions)
    for result in results:
        logger.info(str(result))
    return EXIT_FAILED if any(r.aborted for r in results) else EXIT_OK


def _cmd_deliver(runner: RelayRunner, args) -> int:
    runner.config.require_delivery()
    with runner.locked():
        results = runner.deliver_files(args.files, text=args.text)
    failed = [r for r in results if not r.success]
    logger.info(f"Delivered {len(results) - len(failed)}/{len(results)} file(s)")
    return EXIT_FAILED if failed else EXIT_OK


def _cmd_outbox(runner: RelayRunner, args) -> int:
    runner.config.require_delivery()
    with runner.locked():
        stats = runner.deliver_outbox(folder=args.folder, delete_after_send=args.delete_after_send)
    return EXIT_FAILED if stats["failed"] else EXIT_OK


def _cmd_run(runner: RelayRunner, args) -> int:
    summary = runner.run()
    return EXIT_OK if summary.ok else EXIT_FAILED


def _cmd_cache(runner: RelayRunner, args) -> int:
    cache = SentRecordCache.from_config(runner.config)
    if args.action == "clear":
        if not cache.clear():
            return EXIT_FAILED
        logger.success("Sent cache cleared")
        return EXIT_OK

    entries = cache.entries()
    if not entries:
        logger.info("Sent cache is empty")
        return EXIT_OK
    for digest, entry in sorted(entries.items(), key=lambda item: item[1].get("sent_at", 0)):
        sent_at = datetime.fromtimestamp(entry.get("sent_at", 0)).strftime("%Y/%m/%d %H:%M:%S")
        logger.info(f"{sent_at}  {digest[:16]}  {entry.get('name')}", icon="📄")
    return EXIT_OK


def _cmd_set_secret(args) -> int:
    value = args.value or getpass.getpass(f"{args.key}: ")
    if not save_secret(args.key, value.strip()):
        logger.error(f"'{args.key}' was not stored")
        return EXIT_FAILED
    logger.success(f"'{args.key}' stored in keyring")
    return EXIT_OK


COMMANDS = {
    "sync": _cmd_sync,
    "deliver": _cmd_deliver,
    "outbox": _cmd_outbox,
    "run": _cmd_run,
    "cache": _cmd_cache,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    if args.verbose:
        logger.set_level(LogLevel.DEBUG)

    try:
        if args.command == "set-secret":
            return _cmd_set_secret(args)

        config = load_config(args.config)
        runner = RelayRunner(config, use_lock=not args.no_lock)
        return COMMANDS[args.command](runner, args)
    except ConfigError as e:
        logger.error(str(e))
        return EXIT_CONFIG
    except RunLockedError as e:
        logger.error(str(e))
        return EXIT_LOCKED


if __name__ == "__main__":
    sys.exit(main())
