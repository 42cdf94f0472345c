"""Command-line interface for Cardsmith.

Usage:
    cardsmith assets add photo.jpg
    cardsmith cards new --value K --description "King of hearts"
    cardsmith cards set <card_id> borderColor=rainbow imageId=<asset_id>
    cardsmith export deck.zip
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from cardsmith import __version__
from cardsmith.config import settings
from cardsmith.exceptions import CardsmithError
from cardsmith.models.card import CardUpdate
from cardsmith.models.template import get_template
from cardsmith.services.asset_store import AssetStore
from cardsmith.services.card_service import CardService
from cardsmith.services.card_store import CardStore


def setup_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else settings.log_level)


def parse_assignments(pairs: List[str]) -> Dict[str, Optional[str]]:
    """Parse FIELD=VALUE arguments. Empty values clear the field; ``\\n`` is a line break."""
    fields: Dict[str, Optional[str]] = {}
    for pair in pairs:
        if "=" not in pair:
            raise CardsmithError(f"Expected FIELD=VALUE, got {pair!r}")
        key, value = pair.split("=", 1)
        fields[key.strip()] = value.replace("\\n", "\n") if value else None
    return fields


def _print_progress(current: int, total: int, message: str) -> None:
    print(f"[{current}/{total}] {message}")


# ============ Commands ============

def cmd_assets(args, service: CardService) -> int:
    assets = service.assets
    if args.assets_command == "add":
        for path in args.files:
            asset = assets.add_file(Path(path))
            print(f"{asset.id}  {asset.name}")
    elif args.assets_command == "list":
        for summary in assets.list_summaries():
            print(f"{summary.id}  {summary.mime_type:<12} {summary.size:>9}  {summary.name}")
    elif args.assets_command == "rename":
        if assets.rename(args.asset_id, args.name) is None:
            print(f"Asset not found: {args.asset_id}", file=sys.stderr)
            return 1
    elif args.assets_command == "remove":
        if not assets.delete(args.asset_id):
            print(f"Asset not found: {args.asset_id}", file=sys.stderr)
            return 1
    return 0


def cmd_cards(args, service: CardService) -> int:
    if args.cards_command == "new":
        fields = {"value": args.value}
        if args.caption is not None:
            fields["value_description"] = args.caption
        if args.text is not None:
            fields["text"] = args.text.replace("\\n", "\n")
        if args.description is not None:
            fields["description"] = args.description.replace("\\n", "\n")
        if args.image is not None:
            fields["image_id"] = args.image
        card = service.new_card(**fields)
        print(card.id)
    elif args.cards_command == "list":
        for card in service.list_cards():
            cached = "cached" if card.has_valid_cache_for(service.template.name) else "stale"
            print(f"{card.id}  x{card.amount}  {card.value:<4} {cached:<6} {card.value_description}")
    elif args.cards_command == "show":
        card = service.get_card(args.card_id)
        print(card.model_dump_json(by_alias=True, indent=2, exclude={"base64"}))
    elif args.cards_command == "set":
        try:
            update = CardUpdate.model_validate(parse_assignments(args.fields))
        except ValidationError as e:
            print(f"Invalid field value: {e}", file=sys.stderr)
            return 1
        service.update_card(args.card_id, update)
    elif args.cards_command == "duplicate":
        print(service.duplicate_card(args.card_id).id)
    elif args.cards_command == "delete":
        if not service.delete_card(args.card_id):
            print(f"Card not found: {args.card_id}", file=sys.stderr)
            return 1
    elif args.cards_command == "render":
        Path(args.output).write_bytes(service.rendered_png(args.card_id))
        print(args.output)
    return 0


def cmd_export(args, service: CardService) -> int:
    result = service.export_deck(
        progress=_print_progress,
        include_sidecars=not args.no_sidecars and settings.export_sidecars,
        use_cache=args.use_cache or settings.export_use_cache,
    )
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.archive)
    for issue in result.issues:
        print(f"warning: card {issue.index}: {issue.message}", file=sys.stderr)
    print(f"Wrote {result.exported_count} images to {output}")
    return 0


def cmd_import(args, service: CardService) -> int:
    cards = service.import_deck(Path(args.archive).read_bytes())
    print(f"Imported {len(cards)} cards")
    return 0


# ============ Parser ============

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardsmith", description="Build and export playing-card decks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--data-dir", type=Path, help=f"Data directory (default: {settings.data_dir})")
    parser.add_argument("--template", help=f"Card template (default: {settings.template})")
    sub = parser.add_subparsers(dest="command", required=True)

    assets = sub.add_parser("assets", help="Manage uploaded images")
    assets_sub = assets.add_subparsers(dest="assets_command", required=True)
    add = assets_sub.add_parser("add", help="Add image files")
    add.add_argument("files", nargs="+")
    assets_sub.add_parser("list", help="List images")
    rename = assets_sub.add_parser("rename", help="Rename an image")
    rename.add_argument("asset_id")
    rename.add_argument("name")
    remove = assets_sub.add_parser("remove", help="Delete an image")
    remove.add_argument("asset_id")

    cards = sub.add_parser("cards", help="Manage cards")
    cards_sub = cards.add_subparsers(dest="cards_command", required=True)
    new = cards_sub.add_parser("new", help="Create a card")
    new.add_argument("--value", default="A")
    new.add_argument("--caption", help="Corner caption (valueDescription)")
    new.add_argument("--text", help="Body text, \\n for line breaks")
    new.add_argument("--description")
    new.add_argument("--image", help="Image asset id")
    cards_sub.add_parser("list", help="List cards in deck order")
    show = cards_sub.add_parser("show", help="Show card fields")
    show.add_argument("card_id")
    set_ = cards_sub.add_parser("set", help="Set card fields (FIELD=VALUE)")
    set_.add_argument("card_id")
    set_.add_argument("fields", nargs="+")
    duplicate = cards_sub.add_parser("duplicate", help="Copy a card")
    duplicate.add_argument("card_id")
    delete = cards_sub.add_parser("delete", help="Delete a card")
    delete.add_argument("card_id")
    render = cards_sub.add_parser("render", help="Render one card to PNG")
    render.add_argument("card_id")
    render.add_argument("output")

    export = sub.add_parser("export", help="Export the deck as a zip of PNGs")
    export.add_argument("output")
    export.add_argument("--no-sidecars", action="store_true", help="Leave out the JSON sidecars")
    export.add_argument("--use-cache", action="store_true", help="Reuse valid cached renders")

    imp = sub.add_parser("import", help="Add cards from an exported archive")
    imp.add_argument("archive")

    return parser


def build_service(data_dir: Optional[Path] = None, template_name: Optional[str] = None) -> CardService:
    config = settings.model_copy(update={"data_dir": Path(data_dir)}) if data_dir else settings
    template = get_template(template_name or config.template)
    return CardService(
        card_store=CardStore(config.cards_dir),
        asset_store=AssetStore(config.assets_dir),
        template=template,
    )


COMMANDS = {
    "assets": cmd_assets,
    "cards": cmd_cards,
    "export": cmd_export,
    "import": cmd_import,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        service = build_service(args.data_dir, args.template)
        code = COMMANDS[args.command](args, service)
    except CardsmithError as e:
        print(f"error: {e}", file=sys.stderr)
        code = 1
    if argv is None:
        sys.exit(code)
    return code
