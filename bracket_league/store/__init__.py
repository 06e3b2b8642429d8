from .document_store import JsonDocumentStore

__all__ = ["JsonDocumentStore"]
