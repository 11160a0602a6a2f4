"""CIRRUS

The persistence core of an event-sourcing framework's adapter to a
schemaless document store. It compiles AND/OR record queries into
conjunctive native filters, maps tenants to physical namespaces and back,
and provides transactional record storage plus an append-only per-aggregate
event and snapshot log.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
