# scripts/fetch_message.py
"""Command line access to Gmail messages, attachments and sending."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from gmail_tool.config import load_settings
from gmail_tool.tool import (
    GmailClient,
    build_drive_service,
    build_gmail_service,
    load_credentials,
)
from gmail_tool.types import DriveAttachment, LocalAttachment


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read and send Gmail messages via the Gmail API.")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: GMAIL_TOOL_LOG_LEVEL or WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List recent messages with sender, subject and date.")
    p_list.add_argument("--query", "-q", default=None, help="Gmail search query.")
    p_list.add_argument(
        "--max-results",
        type=int,
        default=20,
        help="How many messages to list (default: %(default)s).",
    )

    p_get = sub.add_parser("get", help="Print one message with its body.")
    p_get.add_argument("message_id")

    p_atts = sub.add_parser("attachments", help="List the attachments of a message.")
    p_atts.add_argument("message_id")

    p_dl = sub.add_parser("download", help="Download one attachment part to disk.")
    p_dl.add_argument("message_id")
    p_dl.add_argument("part_id", help="MIME part id as shown by `attachments`.")
    p_dl.add_argument("--output", "-o", required=True, help="Where to write the bytes.")

    p_send = sub.add_parser("send", help="Send a plain-text message, optionally with attachments.")
    p_send.add_argument("--to", required=True)
    p_send.add_argument("--subject", default="")
    p_send.add_argument("--body", default="", help="Message body ('-' reads stdin).")
    p_send.add_argument("--attach", action="append", default=[], help="Local file to attach (repeatable).")
    p_send.add_argument("--drive-file", action="append", default=[], help="Drive file id to attach (repeatable).")
    return parser


async def run(client: GmailClient, args: argparse.Namespace) -> int:
    if args.command == "list":
        summaries = await client.list_message_summaries(args.query, args.max_results)
        if not summaries:
            print("No messages returned.")
            return 0
        for s in summaries:
            print(f"{s.id}\t{s.date}\t{s.from_}\t{s.subject}")
        return 0

    if args.command == "get":
        msg = await client.get_message(args.message_id)
        print(f"From: {msg.from_}")
        print(f"To: {msg.to}")
        print(f"Subject: {msg.subject}")
        print(f"Date: {msg.date}")
        print()
        print(msg.body)
        return 0

    if args.command == "attachments":
        for att in await client.list_attachments(args.message_id):
            print(f"{att.part_id}\t{att.filename}\t{att.mime_type}\t{att.size}")
        return 0

    if args.command == "download":
        result = await client.download_attachment_part(args.message_id, args.part_id, args.output)
        print(f"Saved {result.size_bytes} bytes to {result.output_path}")
        return 0

    if args.command == "send":
        body = sys.stdin.read() if args.body == "-" else args.body
        attachments = [LocalAttachment(path=p) for p in args.attach]
        attachments += [DriveAttachment(file_id=f) for f in args.drive_file]
        if attachments:
            sent = await client.send_message_with_attachments(args.to, args.subject, body, attachments)
        else:
            sent = await client.send_message(args.to, args.subject, body)
        print(f"Sent message {sent.id} in thread {sent.thread_id}")
        return 0

    raise SystemExit(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    argp = build_parser()
    args = argp.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(level=(args.log_level or settings.log_level).upper())

    creds = load_credentials(
        token_path=settings.token_path,
        client_secret_path=settings.client_secret_path,
        scopes=settings.scopes,
    )
    client = GmailClient(
        build_gmail_service(creds),
        build_drive_service(creds),
        batch_size=settings.batch_size,
    )
    return asyncio.run(run(client, args))


if __name__ == "__main__":
    raise SystemExit(main())
