"""Interfaces (application boundary) for CIRRUS.

Defines framework-free contracts: the document store port, the record and
aggregate storage SPI, and the storage error taxonomy.

Dependency rule: this package may import `cirrus.domain` value types only.
It may be imported by `cirrus.storage`, `cirrus.adapters`, and
`cirrus.bootstrap`.
"""
