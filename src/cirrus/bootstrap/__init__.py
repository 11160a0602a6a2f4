"""Bootstrap (composition root) for CIRRUS.

Assembles the storage stack at runtime: reads configuration, builds the
document store adapter, the namespace resolver and the storage factory.

Import rules:
- This package may import: `cirrus.adapters`, `cirrus.storage`,
  `cirrus.tenant`, `cirrus.interfaces`, `cirrus.config` and `cirrus.logging`.
- Inner layers must not import `cirrus.bootstrap`.
"""

from cirrus.bootstrap.bootstrap import StorageContainer, bootstrap

__all__ = ["StorageContainer", "bootstrap"]
