"""
Command line front end for the messaging client.

Configuration comes from CLOVALINK_* environment variables (see
clovalink.core.config). Examples:

    clovalink selftest
    clovalink init-keys --user emp_42
    clovalink send --user emp_42 --to emp_7 "Quarterly report attached" --attach doc_9
    clovalink read --user emp_42 --with emp_7
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from clovalink.api.client import ClovaLinkClient
from clovalink.core.config import Settings, get_settings, validate_settings
from clovalink.core.errors import ClovaLinkError
from clovalink.core.logging_config import setup_logging
from clovalink.crypto.selftest import run_selftest
from clovalink.services.conversation import MessagingSession
from clovalink.services.decryption import group_by_date
from clovalink.services.keystore import KeyStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clovalink", description="ClovaLink encrypted messaging client")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("selftest", help="Run the crypto self-test")

    init = sub.add_parser("init-keys", help="Make sure a key pair exists and is published")
    init.add_argument("--user", required=True, help="Your employee id")

    send = sub.add_parser("send", help="Send a message")
    send.add_argument("--user", required=True, help="Your employee id")
    target = send.add_mutually_exclusive_group(required=True)
    target.add_argument("--to", help="Recipient employee id (direct message)")
    target.add_argument("--channel", help="Channel id (group message)")
    send.add_argument("--attach", action="append", default=[], metavar="DOCUMENT_ID")
    send.add_argument("--disappear", type=int, default=None, metavar="SECONDS")
    send.add_argument("text", nargs="?", default="")

    read = sub.add_parser("read", help="Show a conversation")
    read.add_argument("--user", required=True, help="Your employee id")
    source = read.add_mutually_exclusive_group(required=True)
    source.add_argument("--with", dest="with_user", help="Other employee id")
    source.add_argument("--channel", help="Channel id")

    return parser


def open_session(settings: Settings, user_id: str) -> MessagingSession:
    client = ClovaLinkClient.from_settings(settings)
    keystore = KeyStore.from_url(
        settings.keystore_url,
        passphrase=settings.keystore_passphrase,
        cache_ttl=settings.key_cache_ttl,
    )
    return MessagingSession(user_id, client, keystore, settings=settings)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "selftest":
        run_selftest()
        print("OK: crypto selftest passed")
        return 0

    try:
        validate_settings(settings)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    session = open_session(settings, args.user)
    try:
        result = session.start()

        if args.command == "init-keys":
            state = "ready" if result.ready else f"not ready ({result.error})"
            print(f"Encryption {state}; fingerprint={result.fingerprint or '-'}")
            if result.rekeyed:
                print("Warning: a previous key was lost; older encrypted messages cannot be read")
            return 0 if result.ready else 1

        if args.command == "send":
            if args.to:
                session.select_direct(args.to)
            else:
                session.select_channel(args.channel)
            sent = session.send(args.text, document_ids=args.attach, disappear_after=args.disappear)
            print(f"Sent {sent.id} ({'encrypted' if sent.is_encrypted else 'not encrypted'})")
            return 0

        if args.with_user:
            session.select_direct(args.with_user)
        else:
            session.select_channel(args.channel)
        session.refresh(raise_errors=True)
        for label, items in group_by_date(session.messages):
            print(f"--- {label} ---")
            for dm in items:
                who = "me" if dm.is_mine else dm.message.sender_id
                stamp = dm.message.created_at.astimezone().strftime("%H:%M")
                print(f"[{stamp}] {who}: {dm.text}")
                for att in dm.message.attachments:
                    print(f"    attachment: {att.document.name} ({att.document.mime_type}, {att.document.size} bytes)")
        return 0
    except (ClovaLinkError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        session.client.close()


if __name__ == "__main__":
    sys.exit(main())
