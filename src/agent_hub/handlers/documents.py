"""
Documents Lambda Handler
------------------------
Manage the vector document index.

POST ?op=upload[&filename=x.pdf]   body: PDF (base64), JSON {content, filename} or plain text
GET  ?op=list                      indexed filenames with upload time
POST|DELETE ?op=delete&filename=x  remove every chunk of a file
GET  ?op=search&query=...          nearest chunks to a query

Chunks are stored with ids "<safe filename>#<chunk>#<upload ms>" so a
file's chunks can be found by id prefix.
"""

import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

from agent_hub.config import PineconeSettings
from agent_hub.embeddings.embed import embed_text
from agent_hub.embeddings.pinecone_client import delete_ids, fetch_metadata, iter_ids, store_embeddings
from agent_hub.errors import ConfigurationError
from agent_hub.handlers.common import (
    BadRequest, error_response, header, http_method, json_body, query_params, raw_body, response,
)
from agent_hub.rag.chunking import chunk_text, clean_text, extract_pdf_text
from agent_hub.rag.retrieve import retrieve_documents
from agent_hub.utils.logger import logger

MIN_CONTENT_LENGTH = 10
LIST_SCAN_LIMIT = 1000
DEFAULT_FILENAME = "document.txt"

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def safe_name(filename: str) -> str:
    return _UNSAFE.sub("_", filename)


def _read_upload(event: Dict[str, Any]):
    """Return (text, filename) from a PDF, JSON or plain-text upload."""
    content_type = header(event, "Content-Type").lower()
    params = query_params(event)

    if "application/pdf" in content_type:
        data = raw_body(event)
        logger.info(f"PDF buffer size: {len(data)}")
        try:
            text = extract_pdf_text(data)
        except Exception as e:
            logger.error(f"PDF parsing error: {e}")
            raise BadRequest(f"Failed to parse PDF: {e}. Try uploading a text file instead.") from e
        return text, params.get("filename") or "document.pdf"

    if "application/json" in content_type:
        body = json_body(event)
        return body.get("content") or "", body.get("filename") or DEFAULT_FILENAME

    text = raw_body(event).decode("utf-8", errors="replace")
    return text, params.get("filename") or DEFAULT_FILENAME


def upload(event: Dict[str, Any]) -> Dict[str, Any]:
    if http_method(event) != "POST":
        return error_response(405, "POST method required for upload")

    text, filename = _read_upload(event)
    text = clean_text(text)
    logger.info(f"Cleaned text length: {len(text)}")

    if len(text) < MIN_CONTENT_LENGTH:
        return error_response(400, "No content to index")

    chunks = chunk_text(text)
    logger.info(f"Text length: {len(text)}, Chunks: {len(chunks)}")

    uploaded_at = datetime.now(timezone.utc).isoformat()
    stamp = int(time.time() * 1000)
    prefix = safe_name(filename)

    vectors = []
    for i, chunk in enumerate(chunks):
        if len(chunk) < MIN_CONTENT_LENGTH:
            continue
        vectors.append({
            "id": f"{prefix}#{i}#{stamp}",
            "values": embed_text(chunk),
            "metadata": {
                "filename": filename,
                "chunk_index": i,
                "uploaded_at": uploaded_at,
                "content": chunk,
            },
        })

    if not vectors:
        return error_response(400, "No valid content chunks to index. Text may be too short or empty.")

    store_embeddings(vectors)

    return response(200, {
        "success": True,
        "filename": filename,
        "chunks": len(vectors),
        "message": f"Indexed {len(vectors)} chunks from {filename}",
    })


def list_documents() -> Dict[str, Any]:
    ids = list(iter_ids(limit=LIST_SCAN_LIMIT))
    files: Dict[str, str] = {}
    for metadata in fetch_metadata(ids).values():
        filename = metadata.get("filename")
        if filename and filename not in files:
            files[filename] = metadata.get("uploaded_at")

    documents = [{"filename": name, "uploaded_at": date} for name, date in files.items()]
    return response(200, {"documents": documents})


def _chunk_ids(filename: str) -> List[str]:
    candidates = list(iter_ids(prefix=f"{safe_name(filename)}#"))
    # different filenames can share a safe prefix ("a.txt" / "a_txt")
    metadata = fetch_metadata(candidates)
    return [vector_id for vector_id, meta in metadata.items() if meta.get("filename") == filename]


def delete(event: Dict[str, Any]) -> Dict[str, Any]:
    filename = query_params(event).get("filename")
    if not filename:
        return error_response(400, "filename parameter required")

    ids = _chunk_ids(filename)
    if ids:
        delete_ids(ids)

    return response(200, {"success": True, "deleted": len(ids), "filename": filename})


def search(event: Dict[str, Any]) -> Dict[str, Any]:
    params = query_params(event)
    query = params.get("query") or params.get("q")
    if not query:
        return error_response(400, "query parameter required")

    top_k = int(params.get("top_k", 5))
    results = retrieve_documents(query, top_k=top_k, filename=params.get("filename"))
    return response(200, {"query": query, "results": results})


OPERATIONS = {
    "upload": upload,
    "list": lambda event: list_documents(),
    "delete": delete,
    "search": search,
}


def lambda_handler(event, context):
    logger.info({k: v for k, v in event.items() if k != "body"})

    try:
        PineconeSettings.from_env()

        operation = query_params(event).get("op", "upload")
        handler = OPERATIONS.get(operation)
        if handler is None:
            return error_response(400, "Invalid operation. Use: upload, list, delete, or search")
        return handler(event)

    except ConfigurationError as e:
        return error_response(500, str(e))
    except BadRequest as e:
        return error_response(400, str(e))
    except ValueError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Document operation failed: {e}")
        return error_response(500, f"Operation failed: {e}")
