from cirrus.adapters.memory.document_store import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]
