#!/usr/bin/env python3
"""
Index Rebuild Utility
Re-embeds every canonical translation entry into the vector index, e.g. after
a schema drift recreated the collection or vectors were lost.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running as `python scripts/rebuild_index.py` from the repo root
sys.path.insert(0, str(Path(__file__).parent.parent))

from transmem.core.config import are_vector_features_enabled
from transmem.core.dao import EntryDAO
from transmem.api.main import build_memory_service


async def rebuild_index(dao: EntryDAO, memory, only_missing: bool = False) -> int:
    """
    Upsert vectors for every entry and record the vector ids on the rows.

    Args:
        dao: Entry store holding the canonical rows
        memory: VectorMemoryService to write into
        only_missing: Skip entries that already have a vector_id

    Returns:
        Number of entries embedded
    """
    if not await memory.ensure_collection():
        print("ERROR: Vector collection could not be initialized")
        return 0

    entries = dao.list_all_entries()
    if only_missing:
        entries = [entry for entry in entries if not entry.vector_id]
    print(f"Re-embedding {len(entries)} entries")

    embedded_count = 0
    for entry in entries:
        vector_id = await memory.update_entry_vectors(entry.vector_id, entry.texts)
        if vector_id is None:
            print(f"ERROR: Failed to embed entry {entry.key[:50]}")
            continue

        if vector_id != entry.vector_id:
            dao.set_vector_id(entry.key, vector_id)
        embedded_count += 1

        if embedded_count % 10 == 0:
            print(f"  ... embedded {embedded_count}/{len(entries)} entries")

    print(f"✓ Successfully rebuilt index with {embedded_count} vectors")
    return embedded_count


async def _run(only_missing: bool) -> int:
    memory = build_memory_service()
    if memory is None:
        print("ERROR: Vector store or embedding provider not available")
        return 0

    try:
        return await rebuild_index(EntryDAO(), memory, only_missing)
    finally:
        await memory.aclose()


def main():
    """Rebuild vector index from the entry table."""
    parser = argparse.ArgumentParser(description="Rebuild the translation-memory vector index")
    parser.add_argument("--only-missing", action="store_true", help="only embed entries without a vector_id")
    args = parser.parse_args()

    if not are_vector_features_enabled():
        print("ERROR: Vector features disabled. Set VECTOR_ENABLED=true")
        sys.exit(1)

    print("Starting vector index rebuild...")
    asyncio.run(_run(args.only_missing))
    print("Index rebuild complete!")


if __name__ == "__main__":
    main()
