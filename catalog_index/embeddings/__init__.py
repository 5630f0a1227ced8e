"""Embeddings module: Ollama embed client and catalog item text builder."""
from catalog_index.embeddings.ollama import OllamaEmbedClient
from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.embeddings.text import build_product_embedding_text

__all__ = ["EmbedSettings", "OllamaEmbedClient", "build_product_embedding_text"]
