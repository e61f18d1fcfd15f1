#!/usr/bin/env python3
"""
Check Qdrant connectivity and inspect one collection's vector config.

Reports whether the collection defines the sparse vector used for hybrid
search; collections without it are searched dense-only.

Run: python scripts/check_qdrant.py [collection_name]
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


async def check_qdrant(collection_name: str | None) -> bool:
    from src.rag.vector_index import (
        DEFAULT_QDRANT_URL,
        DEFAULT_SPARSE_VECTOR_NAME,
        create_qdrant_client,
    )

    print(f"Checking Qdrant at {DEFAULT_QDRANT_URL}...")
    client = create_qdrant_client()
    try:
        try:
            response = await client.get_collections()
        except Exception as e:
            print(f"FAILED to connect to Qdrant: {e}")
            return False

        names = [c.name for c in response.collections]
        print(f"Qdrant is online. Found {len(names)} collections.")
        for name in names:
            print(f"  - {name}")

        if not collection_name:
            return True
        if collection_name not in names:
            print(f"\nCollection '{collection_name}' not found.")
            return False

        print(f"\nInspecting collection '{collection_name}'...")
        info = await client.get_collection(collection_name)
        params = info.config.params
        print(f"  Points:         {info.points_count}")
        print(f"  Dense vectors:  {params.vectors}")
        print(f"  Sparse vectors: {params.sparse_vectors}")

        sparse = params.sparse_vectors or {}
        if DEFAULT_SPARSE_VECTOR_NAME not in sparse:
            print(
                f"\nWARNING: sparse vector '{DEFAULT_SPARSE_VECTOR_NAME}' not found; "
                "this collection will be searched dense-only."
            )
        return True
    finally:
        await client.close()


def main():
    collection_name = sys.argv[1] if len(sys.argv) > 1 else None
    success = asyncio.run(check_qdrant(collection_name))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
