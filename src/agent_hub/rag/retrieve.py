from agent_hub.embeddings.embed import embed_text
from agent_hub.embeddings.pinecone_client import query_embedding


def retrieve_documents(query, top_k=5, filename=None):
    query_vector = embed_text(query)
    metadata_filter = {"filename": {"$eq": filename}} if filename else None
    results = query_embedding(query_vector, top_k=top_k, metadata_filter=metadata_filter)
    docs = []
    for match in results:
        metadata = match.metadata or {}
        docs.append({
            "id": match.id,
            "score": match.score,
            "filename": metadata.get("filename"),
            "chunk_index": metadata.get("chunk_index"),
            "content": metadata.get("content"),
        })
    return docs
