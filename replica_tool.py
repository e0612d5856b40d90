#!/usr/bin/env python3
"""
Maintain the Gym Desk local replica from the command line.

The replica is the JSON file the Sync Client keeps next to the front
desk application.  This script bootstraps it against the Record Store
and offers the maintenance actions of the desk's data screen.

Usage:
    python replica_tool.py status
    python replica_tool.py export --out backup.json
    python replica_tool.py import backup.json
    python replica_tool.py sync-now
    python replica_tool.py expire
    python replica_tool.py clear --yes

The replica path, Record Store URL and token default to the
``GYM_DESK_REPLICA_PATH``, ``GYM_DESK_API_URL`` and
``GYM_DESK_API_TOKEN`` environment variables.
"""

import argparse
import sys
from pathlib import Path

from gym_desk_api.app.core.errors import GymDeskError
from gym_desk_api.app.core.logging_config import setup_logging
from gym_desk_sync import JSONFileStorage, RecordStoreAPI, SyncClient
from gym_desk_sync.config import sync_settings


def build_client(args) -> SyncClient:
    remote = None
    if not args.offline:
        remote = RecordStoreAPI(base_url=args.api_url, api_key=args.token or None, timeout=sync_settings.timeout)
    return SyncClient(JSONFileStorage(args.replica), remote=remote)


def cmd_status(client: SyncClient, args) -> int:
    state = client.state
    print(f"Record Store: {'online' if client.remote_available else 'offline'}")
    for name in ("members", "trainers", "visitors", "invoices", "follow_ups", "sessions", "products", "check_ins", "activities"):
        print(f"  {name:<12} {len(getattr(state, name))}")
    print(f"  last invoice #{state.last_invoice_sequence}")
    return 0


def cmd_export(client: SyncClient, args) -> int:
    payload = client.export_data()
    if args.out:
        Path(args.out).write_text(payload, encoding="utf-8")
        print(f"[+] Replica exported to {args.out}")
    else:
        print(payload)
    return 0


def cmd_import(client: SyncClient, args) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"[!] File not found: {path}", file=sys.stderr)
        return 1
    state = client.import_data(path.read_text(encoding="utf-8"))
    print(f"[+] Imported {len(state.members)} members and {len(state.invoices)} invoices")
    return 0


def cmd_sync_now(client: SyncClient, args) -> int:
    if client.sync_now():
        print("[+] Replica replaced with Record Store data")
        return 0
    print("[!] Nothing synced, local replica kept", file=sys.stderr)
    return 2


def cmd_expire(client: SyncClient, args) -> int:
    expired = client.auto_expire_members()
    print(f"[+] {len(expired)} memberships expired")
    return 0


def cmd_clear(client: SyncClient, args) -> int:
    if not args.yes:
        print("[!] Refusing to clear the replica without --yes", file=sys.stderr)
        return 1
    client.clear_all_data()
    print("[+] Replica cleared (pricing and terms kept)")
    return 0


COMMANDS = {
    "status": cmd_status,
    "export": cmd_export,
    "import": cmd_import,
    "sync-now": cmd_sync_now,
    "expire": cmd_expire,
    "clear": cmd_clear,
}


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Gym Desk replica maintenance.")
    ap.add_argument("--replica", default=sync_settings.replica_path, help="Path to the replica JSON file")
    ap.add_argument("--api-url", default=sync_settings.api_url, help="Record Store root URL")
    ap.add_argument("--token", default=sync_settings.api_token, help="Bearer token for the Record Store")
    ap.add_argument("--offline", action="store_true", help="Do not contact the Record Store")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Show record counts")
    export = sub.add_parser("export", help="Write the replica as JSON")
    export.add_argument("--out", help="Output file (stdout when omitted)")
    imp = sub.add_parser("import", help="Replace the replica from an export file")
    imp.add_argument("file")
    sub.add_parser("sync-now", help="Replace the replica with Record Store data")
    sub.add_parser("expire", help="Expire lapsed memberships")
    clear = sub.add_parser("clear", help="Empty every collection")
    clear.add_argument("--yes", action="store_true", help="Confirm clearing")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(sync_settings.log_level)
    client = build_client(args)
    client.bootstrap()
    try:
        return COMMANDS[args.command](client, args)
    except GymDeskError as exc:
        print(f"[!] {exc.code}: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
