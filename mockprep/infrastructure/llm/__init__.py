"""LLM client infrastructure."""

from .client import VertexRestClient, build_contents, extract_json

__all__ = ["VertexRestClient", "build_contents", "extract_json"]
