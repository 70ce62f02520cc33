#!/usr/bin/env python3
"""
Create the Pinecone index used by the documents handler.
Run this once per environment before uploading documents.

Usage:
    export PINECONE_API_KEY="your-api-key"
    python setup_pinecone.py
"""

import sys
import time

from pinecone import Pinecone, ServerlessSpec

from agent_hub.config import PineconeSettings
from agent_hub.embeddings.embed import EMBEDDING_DIMENSION
from agent_hub.errors import ConfigurationError

READY_POLL_SECONDS = 5


def main():
    try:
        settings = PineconeSettings.from_env()
    except ConfigurationError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    print("🔧 Connecting to Pinecone...")
    pc = Pinecone(api_key=settings.api_key)

    if settings.index_name in [idx.name for idx in pc.list_indexes()]:
        print(f"✅ Index '{settings.index_name}' already exists")
        return

    print(f"📦 Creating index '{settings.index_name}' ({EMBEDDING_DIMENSION} dimensions)...")
    pc.create_index(
        name=settings.index_name,
        dimension=EMBEDDING_DIMENSION,
        metric="cosine",
        spec=ServerlessSpec(cloud="aws", region="us-east-1"),
    )

    print("⏳ Waiting for index to be ready...")
    while not pc.describe_index(settings.index_name).status["ready"]:
        time.sleep(READY_POLL_SECONDS)

    print("\n🎉 Setup complete! Upload a document with:")
    print('   python local_test.py documents POST \'{"content": "...", "filename": "notes.txt"}\'')


if __name__ == "__main__":
    main()
