"""Quest platform indexer + read model.

Usage:
  python -m quest_indexer --config config.json run
  python -m quest_indexer --config config.json backfill --from-block 0
  python -m quest_indexer --config config.json replay --target rebuilt.db
  python -m quest_indexer --config config.json entity --kind user --key 0xabc...
  python -m quest_indexer --config config.json list --kind submission_like --parent 0x...07
  python -m quest_indexer --config config.json stats
  python -m quest_indexer --config config.json dropped
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from quest_indexer.config import load_config
from quest_indexer.dispatcher import replay
from quest_indexer.entities import ENTITY_TYPES
from quest_indexer.indexer import EventIndexer
from quest_indexer.query import ReadModel
from quest_indexer.store import EntityStore
from quest_indexer.utils import _json_dumps, _log


def _open_store(db_path: str) -> EntityStore:
    if not os.path.exists(db_path):
        raise FileNotFoundError(f"database not found: {db_path}")
    store = EntityStore(db_path)
    store.init_db()
    return store


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Quest platform event indexer")
    parser.add_argument("--config", default="config.json", help="Path to config JSON")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Start indexing")

    backfill_parser = sub.add_parser("backfill", help="Manual backfill")
    backfill_parser.add_argument("--from-block", type=int, required=True)
    backfill_parser.add_argument("--to-block", type=int, default=None)

    replay_parser = sub.add_parser("replay", help="Rebuild the projection from the stored event log")
    replay_parser.add_argument("--target", required=True, help="Path of a fresh database to build")
    replay_parser.add_argument("--to-block", type=int, default=None)

    entity_parser = sub.add_parser("entity", help="Look up one entity")
    entity_parser.add_argument("--kind", choices=sorted(ENTITY_TYPES), required=True)
    entity_parser.add_argument("--key", required=True)

    list_parser = sub.add_parser("list", help="List entities of a kind in insertion order")
    list_parser.add_argument("--kind", choices=sorted(ENTITY_TYPES), required=True)
    list_parser.add_argument("--parent", default=None)

    sub.add_parser("stats", help="Show platform statistics")
    sub.add_parser("dropped", help="Show events skipped for missing parents")

    args = parser.parse_args(argv)
    cfg = load_config(args.config)
    db_path = cfg["db_path"]

    if args.command == "run":
        indexer = EventIndexer(cfg)
        asyncio.run(indexer.start())
        return 0

    if args.command == "backfill":
        async def _run_backfill() -> None:
            indexer = EventIndexer(cfg)
            await indexer.init_db()
            await indexer.load_contracts()
            to_block = args.to_block
            if to_block is None:
                if not indexer.w3_http:
                    raise RuntimeError("rpc_http is required")
                to_block = indexer.w3_http.eth.block_number
            await indexer.backfill_range(args.from_block, to_block)

        asyncio.run(_run_backfill())
        return 0

    if args.command == "replay":
        if os.path.exists(args.target):
            raise FileExistsError(f"replay target already exists: {args.target}")
        source = _open_store(db_path)
        target = EntityStore(args.target)
        target.init_db()
        try:
            dispatcher = replay(source, target, args.to_block)
        finally:
            source.close()
            target.close()
        _log(f"Replay finished: {dispatcher.counts}")
        print(_json_dumps(dispatcher.counts))
        return 0

    store = _open_store(db_path)
    model = ReadModel(store)
    try:
        if args.command == "entity":
            record = model.entity(args.kind, args.key)
            if record is None:
                _log(f"{args.kind} {args.key} not found")
                return 1
            print(_json_dumps(record.to_dict()))
        elif args.command == "list":
            rows = store.list(ENTITY_TYPES[args.kind], parent=args.parent)
            print(_json_dumps([row.to_dict() for row in rows]))
        elif args.command == "stats":
            stats = model.stats()
            print(_json_dumps(stats.to_dict() if stats else None))
        elif args.command == "dropped":
            print(_json_dumps(model.dropped_events()))
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
