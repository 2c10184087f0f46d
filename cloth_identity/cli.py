"""Command line interface for cloth identity registration and verification.

Usage:
    cloth-identity register  <image>... [--id ID]
    cloth-identity verify    <item_id> <image>
    cloth-identity identify  <image> [--top-k 5]
    cloth-identity list
    cloth-identity show      <item_id>
    cloth-identity delete    <item_id> [--yes]
    cloth-identity hash      <image>

Records live under --data-dir (default: $CLOTH_DATA_DIR or ./data).
Extraction parameters come from CLOTH_* environment variables, see
cloth_identity.config.
"""

import os
import sys
import json
import argparse
import logging
from datetime import datetime
from typing import List, Optional

from .config import IdentityConfig
from .errors import ClothIdentityError
from .extractor import extract
from .hashing import features_hash
from .registry import IdentityRegistry
from .storage import RecordStore

logger = logging.getLogger("cloth_identity")


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _format_time(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000.0).isoformat(sep=" ", timespec="seconds")


def _registry(args) -> IdentityRegistry:
    return IdentityRegistry(RecordStore(args.data_dir), IdentityConfig.from_env())


# ---- Subcommands ----

def cmd_register(args) -> int:
    registry = _registry(args)

    if args.id and len(args.images) > 1:
        print("Error: --id can only be used with a single image", file=sys.stderr)
        return 2

    if len(args.images) == 1:
        identity = registry.register(args.images[0], item_id=args.id)
        results = [identity]
    else:
        results = registry.register_many(args.images)

    failures = 0
    for image, result in zip(args.images, results):
        if isinstance(result, Exception):
            failures += 1
            print(f"{image}: FAILED ({result})")
            continue
        print(f"{image}: registered as {result.item_id}")
        print(f"  Features hash:  {result.features_hash}")
        print(f"  Timestamp hash: {result.timestamp_hash}")
        print(f"  Combined hash:  {result.combined_hash}")
        print(f"  Created:        {_format_time(result.creation_time)}")

    return 1 if failures else 0


def cmd_verify(args) -> int:
    registry = _registry(args)
    result = registry.verify(args.item_id, args.image)
    if result is None:
        print(f"Item not found: {args.item_id}")
        return 1

    sim = result.similarity
    print(f"Item: {result.item_id}")
    print(f"  Texture similarity:   {sim.texture_sim * 100:.2f}%")
    print(f"  Pattern similarity:   {sim.pattern_sim * 100:.2f}%")
    print(f"  Dimension similarity: {sim.dimension_sim * 100:.2f}%")
    print(f"  Total similarity:     {sim.total * 100:.2f}%")
    if result.degraded:
        print(f"  Degraded categories:  {', '.join(sorted(result.degraded))}")
    if not result.integrity_ok:
        print("  Warning: stored features no longer match their registered hash")
    print(f"Status: {'AUTHENTIC' if sim.authentic else 'NOT AUTHENTIC'}")
    return 0 if sim.authentic else 3


def cmd_identify(args) -> int:
    registry = _registry(args)
    results = registry.identify(args.image, top_k=args.top_k)
    if not results:
        print("No matching items.")
        return 1

    for rank, (item_id, sim) in enumerate(results, start=1):
        verdict = "authentic" if sim.authentic else "no match"
        print(f"{rank}. {item_id}  total={sim.total * 100:.2f}%  ({verdict})")
    return 0


def cmd_list(args) -> int:
    registry = _registry(args)
    ids = registry.list_ids()
    if not ids:
        print("No items stored.")
        return 0

    for i, item_id in enumerate(ids, start=1):
        identity = registry.get(item_id)
        print(f"{i}. {item_id}")
        if identity is not None:
            print(f"   Created: {_format_time(identity.creation_time)}")
            print(f"   Hash:    {identity.combined_hash}")
            if identity.image_reference:
                print(f"   Image:   {identity.image_reference}")
    return 0


def cmd_show(args) -> int:
    registry = _registry(args)
    identity = registry.get(args.item_id)
    if identity is None:
        print(f"Item not found: {args.item_id}")
        return 1
    print(json.dumps(identity.to_dict(), indent=2, sort_keys=True))
    return 0


def cmd_delete(args) -> int:
    registry = _registry(args)
    if registry.get(args.item_id) is None:
        print(f"Item not found: {args.item_id}")
        return 1

    if not args.yes:
        answer = input(f"Delete all data for '{args.item_id}'? (y/N): ").strip().lower()
        if answer not in ("y", "yes"):
            print("Deletion cancelled.")
            return 0

    registry.delete(args.item_id)
    print(f"Deleted {args.item_id}")
    return 0


def cmd_hash(args) -> int:
    config = IdentityConfig.from_env()
    descriptors = extract(args.image, config)
    print(features_hash(descriptors, config))
    return 0


# ---- Entry point ----

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloth-identity",
        description="Register and authenticate textile items from photographs.",
    )
    parser.add_argument(
        "--data-dir", default=os.environ.get("CLOTH_DATA_DIR", "data"),
        help="Record store directory (default: $CLOTH_DATA_DIR or ./data)",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Register one or more items")
    p.add_argument("images", nargs="+")
    p.add_argument("--id", default=None, help="Explicit item id (single image only)")
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("verify", help="Verify a photograph against a registered item")
    p.add_argument("item_id")
    p.add_argument("image")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("identify", help="Find registered items matching a photograph")
    p.add_argument("image")
    p.add_argument("--top-k", type=int, default=5)
    p.set_defaults(func=cmd_identify)

    p = sub.add_parser("list", help="List registered items")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Print an identity record as JSON")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("delete", help="Delete a registered item")
    p.add_argument("item_id")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("hash", help="Print the features hash of an image")
    p.add_argument("image")
    p.set_defaults(func=cmd_hash)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.debug)

    try:
        return args.func(args)
    except ClothIdentityError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
