"""Command-line entry point for the feed asset orchestrator."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from feedgen.pipeline import FeedGenerator
from feedgen.types import CatalogItem, ContentType, GenerationConfig


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Generate and reconcile marketing assets for catalog items.")
    commands = parser.add_subparsers(dest="command", required=True)

    dispatch = commands.add_parser("dispatch", help="Generate one asset per catalog item.")
    dispatch.add_argument("items_path", help="JSON file with a list of {id, name, description, images}.")
    dispatch.add_argument("--channel", required=True, help="Target channel, e.g. instagram or youtube.")
    dispatch.add_argument(
        "--content-type",
        choices=["image", "video", "text"],
        default="image",
        help="Kind of asset to generate.",
    )
    dispatch.add_argument("--format", help="Platform format, e.g. feed_post or shorts.")
    dispatch.add_argument("--orientation", choices=["square", "landscape", "portrait"])
    dispatch.add_argument("--instruction", help="Operator instruction; a channel default is used when omitted.")
    dispatch.add_argument(
        "--enhance",
        action="store_true",
        help="Rewrite the instruction into a cleaner brief before dispatching.",
    )

    reconcile = commands.add_parser("reconcile", help="Check the provider job behind one pending asset.")
    reconcile.add_argument("asset_id")

    commands.add_parser("recover", help="Resolve every pending asset from the provider's job list.")
    commands.add_parser("pending", help="List assets still waiting on a provider.")
    return parser.parse_args(argv)


def _load_items(path: str) -> list[CatalogItem]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    return [
        CatalogItem(
            id=str(entry["id"]),
            name=entry.get("name") or str(entry["id"]),
            description=entry.get("description") or "",
            images=list(entry.get("images") or []),
        )
        for entry in raw
    ]


def main(argv: list[str] | None = None) -> int:
    """Entry point used by ``python run.py``."""
    args = parse_args(argv if argv is not None else sys.argv[1:])
    generator = FeedGenerator()

    if args.command == "dispatch":
        items = _load_items(args.items_path)
        instruction = args.instruction
        if instruction and args.enhance:
            instruction = generator.enhance_instruction(instruction)
        config = GenerationConfig(
            channel=args.channel,
            content_type=ContentType(args.content_type),
            format=args.format,
            orientation=args.orientation,
            instruction=instruction,
        )
        batch = generator.dispatch(items, config)
        for entry in batch.entries:
            record = entry.record
            detail = entry.error or record.content or record.asset_url
            print(f"{record.item_id}\t{record.status.value}\t{record.id}\t{detail}")
        print(f"Request logs stored under {generator.logger.base_dir / batch.batch_id}")
        return 0 if batch.failed == 0 else 1

    if args.command == "reconcile":
        record = generator.reconcile(args.asset_id)
        if record is None:
            print(f"Asset {args.asset_id} unchanged.")
        else:
            print(f"Asset {record.id} is now {record.status.value}: {record.asset_url}")
        return 0

    if args.command == "recover":
        entries = generator.recover_all()
        for entry in entries:
            marker = "updated" if entry.updated else "unchanged"
            print(f"{entry.job_id}\t{marker}\t{entry.asset_id or '-'}")
        return 0

    for record in generator.pending():
        print(f"{record.id}\t{record.item_id}\t{record.source_provider.value}\t{record.asset_url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
