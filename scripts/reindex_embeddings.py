#!/usr/bin/env python3
"""
Rebuild task and note embeddings.

Recomputes every stored embedding from the record's current text, e.g.
after changing the embedding model or after writes whose indexing failed.

Usage:
    python3 scripts/reindex_embeddings.py              # Tasks and notes
    python3 scripts/reindex_embeddings.py --kind task  # Tasks only
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskflow.core.config import Config
from taskflow.core.database import Database
from taskflow.core.models import RecordKind
from taskflow.core.record_store import RecordStore
from taskflow.errors import EmbeddingError
from taskflow.search.embeddings import shared_embedder
from taskflow.search.indexer import EmbeddingIndexer

KINDS = {"task": [RecordKind.TASK], "note": [RecordKind.NOTE], "all": [RecordKind.TASK, RecordKind.NOTE]}


def main():
    """Reindex embeddings."""
    parser = argparse.ArgumentParser(description="Rebuild TaskFlow embeddings")
    parser.add_argument("--kind", choices=sorted(KINDS), default="all", help="Which records to reindex")
    parser.add_argument("--db", type=Path, help="Database path (overrides config)")
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = Config()
    db = Database(args.db or config.get_database_path())
    store = RecordStore(db)
    embedder = shared_embedder(
        config.get("embedding_model", section="search"),
        config.get("embedding_dimension", section="search"),
    )
    indexer = EmbeddingIndexer(store, embedder)

    print("=" * 60)
    print("TaskFlow Embedding Reindex")
    print("=" * 60)

    failed = 0
    for kind in KINDS[args.kind]:
        print(f"\nReindexing {kind.label}s...")
        try:
            stats = indexer.reindex_all(kind)
        except EmbeddingError as e:
            print(f"✗ Embedding model unavailable: {e}")
            return 1
        failed += stats["failed"]
        print(f"  Indexed: {stats['indexed']}")
        print(f"  Cleared (no text): {stats['cleared']}")
        print(f"  Failed: {stats['failed']}")

    print("\n✓ Reindex complete!" if not failed else f"\n✗ Reindex finished with {failed} failures")
    return 0 if not failed else 1


if __name__ == "__main__":
    sys.exit(main())
