from typing import Any, Dict, Iterator, List, Optional

from pinecone import Pinecone

from agent_hub.config import PineconeSettings
from agent_hub.utils.logger import logger

UPSERT_BATCH_SIZE = 50
FETCH_BATCH_SIZE = 100

# Lazy initialization to prevent crashes at import time
_pc = None
_index = None
_index_name = None


def _get_index():
    """Lazily initialize Pinecone connection."""
    global _pc, _index, _index_name
    settings = PineconeSettings.from_env()
    if _index is None or _index_name != settings.index_name:
        logger.info(f"Initializing Pinecone with index: {settings.index_name}")
        _pc = Pinecone(api_key=settings.api_key)
        _index = _pc.Index(settings.index_name)
        _index_name = settings.index_name
    return _index


def store_embeddings(vectors: List[Dict[str, Any]]) -> int:
    """Upsert {"id", "values", "metadata"} records in batches."""
    index = _get_index()
    for start in range(0, len(vectors), UPSERT_BATCH_SIZE):
        index.upsert(vectors=vectors[start:start + UPSERT_BATCH_SIZE])
    return len(vectors)


def query_embedding(vector: List[float], top_k: int = 5, metadata_filter: Optional[Dict] = None):
    index = _get_index()
    return index.query(vector=vector, top_k=top_k, include_metadata=True, filter=metadata_filter).matches


def iter_ids(prefix: Optional[str] = None, limit: Optional[int] = None) -> Iterator[str]:
    """Walk vector ids (optionally by prefix), stopping after ``limit``."""
    index = _get_index()
    pages = index.list(prefix=prefix) if prefix else index.list()
    seen = 0
    for page in pages:
        for vector_id in page:
            yield vector_id
            seen += 1
            if limit is not None and seen >= limit:
                return


def fetch_metadata(ids: List[str]) -> Dict[str, Dict[str, Any]]:
    """Map id -> metadata for the given ids."""
    index = _get_index()
    found = {}
    for start in range(0, len(ids), FETCH_BATCH_SIZE):
        response = index.fetch(ids=ids[start:start + FETCH_BATCH_SIZE])
        for vector_id, vector in response.vectors.items():
            found[vector_id] = vector.metadata or {}
    return found


def delete_ids(ids: List[str]) -> int:
    index = _get_index()
    for start in range(0, len(ids), FETCH_BATCH_SIZE):
        index.delete(ids=ids[start:start + FETCH_BATCH_SIZE])
    return len(ids)
