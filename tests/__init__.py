"""CIRRUS test suite.

Folder taxonomy
- unit/         : Isolated, fast checks of a single module/class/function.
- integration/  : Storages wired to real store adapters (in-memory and SQLite).
- contract/     : Document store behavior enforced across every adapter.
- fixtures/     : Shared pytest plugins (no tests here).

General guidance
- Keep unit fast and deterministic; prefer fakes over mocks at boundaries.
- Integration uses temp-file SQLite databases with per-test setup/teardown.
- Contract parametrizes implementations to ensure consistent behavior.
- Property-based tests live with the layer they exercise and use @pytest.mark.property.
- Markers: unit, integration, contract, property, slow
"""
