from cirrus.adapters.sqlalchemy.document_store import SqlAlchemyDocumentStore

__all__ = ["SqlAlchemyDocumentStore"]
