from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

from session_keeper import config
from session_keeper.auth import FileSessionStore, PersistedPayload, PersistenceClient, RestoreClient
from session_keeper.auth.codec import decode_file
from session_keeper.errors import PayloadShapeError


def _positive_int(value: str) -> int:
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError("value must be a positive integer")
    return ivalue


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m session_keeper",
        description="Back up and restore chat session auth files.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>", required=True)

    backup_cmd = subparsers.add_parser(
        "backup", help="Persist a session's allow-listed auth files to the store."
    )
    backup_cmd.add_argument("session_id", help="Session identifier.")
    backup_cmd.add_argument("--auth-dir", type=Path, required=True, help="Session auth directory.")
    backup_cmd.add_argument("--store", type=Path, required=True, help="Directory holding persisted payloads.")
    backup_cmd.add_argument(
        "--max-bytes",
        type=_positive_int,
        default=None,
        help=f"Compressed payload budget (default {config.persist.MAX_BYTES}).",
    )
    backup_cmd.add_argument(
        "--attempts",
        type=_positive_int,
        default=None,
        help=f"Save/verify attempts (default {config.persist.ATTEMPTS}).",
    )

    restore_cmd = subparsers.add_parser(
        "restore", help="Write a persisted payload back into an auth directory."
    )
    restore_cmd.add_argument("session_id", help="Session identifier.")
    restore_cmd.add_argument("--auth-dir", type=Path, required=True, help="Destination auth directory.")
    restore_cmd.add_argument("--store", type=Path, required=True, help="Directory holding persisted payloads.")

    inspect_cmd = subparsers.add_parser("inspect", help="List the files in a persisted payload.")
    inspect_cmd.add_argument("session_id", help="Session identifier.")
    inspect_cmd.add_argument("--store", type=Path, required=True, help="Directory holding persisted payloads.")

    return parser


async def _backup(args: argparse.Namespace) -> int:
    store = FileSessionStore(args.store)
    result = await PersistenceClient().store(
        args.session_id,
        args.auth_dir,
        store.save,
        store.load,
        attempts=args.attempts,
        max_bytes=args.max_bytes,
    )
    if result.ok:
        print(f"backed up {args.session_id} (tier={result.tier}, attempts={result.attempts})")
        return 0
    print(f"backup failed: {result.reason}", file=sys.stderr)
    return 1


async def _restore(args: argparse.Namespace) -> int:
    store = FileSessionStore(args.store)
    result = await RestoreClient().restore(args.session_id, args.auth_dir, store.load)
    if result.ok:
        print(f"restored {len(result.restored)} file(s) into {args.auth_dir}")
        return 0
    print(f"restore failed: {result.reason}", file=sys.stderr)
    return 1


async def _inspect(args: argparse.Namespace) -> int:
    loaded = await FileSessionStore(args.store).load(args.session_id)
    if loaded is None:
        print(f"no payload stored for {args.session_id}", file=sys.stderr)
        return 1
    try:
        payload = PersistedPayload.from_loaded(loaded)
    except PayloadShapeError as exc:
        print(f"invalid payload: {exc}", file=sys.stderr)
        return 1

    print(f"tier={payload.tier} totalBytes={payload.total_bytes} ts={payload.timestamp}")
    for path in sorted(payload.encoded_files):
        try:
            size = len(decode_file(payload.encoded_files[path]))
        except ValueError:
            size = -1
        checksum = payload.checksums.get(path, "-")
        print(f"{path}\t{size}\t{checksum}")
    return 0


_COMMANDS = {
    "backup": _backup,
    "restore": _restore,
    "inspect": _inspect,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return asyncio.run(_COMMANDS[args.command](args))


__all__ = ["build_parser", "main"]
