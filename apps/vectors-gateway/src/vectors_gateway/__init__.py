"""Vectors Gateway: semantic chunking, embedding and vector storage for knowledge bases."""

__version__ = "0.1.0"
