"""Adapters (infrastructure) for CIRRUS.

Concrete implementations of the document store port (in-memory and
SQLAlchemy-backed) plus the shared engine, dialect and column-type plumbing.

Dependency rule: may import `cirrus.interfaces`; nothing in
`cirrus.interfaces` or `cirrus.domain` may import this package.
"""
