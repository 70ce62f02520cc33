import json
from typing import List

from agent_hub.config import EMBED_MODEL
from agent_hub.llm.bedrock_client import _get_bedrock_client

# Titan Embeddings v2 output size; the Pinecone index must match
EMBEDDING_DIMENSION = 1024


def embed_text(text: str) -> List[float]:
    response = _get_bedrock_client().invoke_model(
        modelId=EMBED_MODEL,
        contentType="application/json",
        accept="application/json",
        body=json.dumps({"inputText": text, "dimensions": EMBEDDING_DIMENSION}),
    )
    result = json.loads(response["body"].read().decode())
    return result["embedding"]
