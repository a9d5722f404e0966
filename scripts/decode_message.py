#!/usr/bin/env python3
"""Decode captured uplink messages offline.

Feeds one or more raw messages (arguments, or one per line on stdin)
through the same decode/convert/merge path the monitor uses and prints the
resulting display snapshot as JSON.  Messages are merged in order, so
partial messages show how stale values are kept.

Examples:
    python scripts/decode_message.py "AT:2500,AH:6200,LW:8000,IC:150,WD:90,WS:320"
    cat captured.txt | python scripts/decode_message.py --verbose
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyvinenode.ingestion.apply import apply_message_to_store  # noqa: E402
from pyvinenode.state.store import ReadingStore  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("messages", nargs="*", help="Raw messages; read from stdin when omitted.")
    parser.add_argument("--node-id", default="offline", help="Node id used in log lines.")
    parser.add_argument("--placeholder", default="--", help="Text for measurements never decoded.")
    parser.add_argument("--outcomes", action="store_true", help="Also print the outcome of every message.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    messages: list[str] = args.messages or [line.rstrip("\n") for line in sys.stdin if line.strip()]
    if not messages:
        print("no messages given", file=sys.stderr)
        return 2

    store = ReadingStore()
    for raw in messages:
        outcome = apply_message_to_store(store, raw, node_id=args.node_id)
        if args.outcomes:
            print(outcome.model_dump_json(exclude={"observed_at"}))

    display = store.snapshot().display(args.placeholder)
    print(json.dumps({m.value: text for m, text in display.items()}, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
