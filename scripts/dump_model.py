"""
Model dump wrapper.
(Wrapper for uuid_navigator.services.sql_processor)
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict

from dotenv import load_dotenv

# Ensure the package is importable from a source checkout
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from uuid_navigator.config.settings import get_settings
from uuid_navigator.services.sql_processor import SqlProcessor
from uuid_navigator.services.uuid_finder import UuidFinder
from uuid_navigator.utils.logging_config import setup_logging
from uuid_navigator.utils.metrics import get_registry

load_dotenv()


async def dump(directory: str, lookup: str = None, full: bool = False) -> dict:
    processor = SqlProcessor(root_dir=directory)
    try:
        snapshot = await processor.parse_all_sql_files()

        if lookup:
            info = UuidFinder(snapshot).get_info(lookup)
            return {"uuid": lookup, "info": asdict(info) if info else None}

        if full:
            return asdict(snapshot)

        return {
            "classes": [
                {
                    "id": cls.id,
                    "name": cls.name,
                    "type": cls.class_type,
                    "properties": len(cls.properties),
                    "objects": len(cls.objects),
                }
                for cls in snapshot.classes
            ],
            "property_count": len(snapshot.properties),
            "object_count": len(snapshot.objects),
            "cache": processor.cache.get_stats(),
        }
    finally:
        processor.dispose()


if __name__ == "__main__":
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Print the object model built from SQL files.")
    parser.add_argument(
        "--dir",
        default=settings.workspace_root,
        help=f"Directory containing SQL files (default: {settings.workspace_root})",
    )
    parser.add_argument("--uuid", help="Describe a single id instead of the whole model")
    parser.add_argument("--full", action="store_true", help="Dump every record")
    parser.add_argument("--metrics", action="store_true", help="Print metrics afterwards")

    args = parser.parse_args()

    if not os.path.isdir(args.dir):
        print(f"[!] Directory not found: {args.dir}")
        sys.exit(1)

    setup_logging("WARNING")
    result = asyncio.run(dump(args.dir, lookup=args.uuid, full=args.full))
    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.metrics:
        print(get_registry().export_prometheus())
