"""Integration tests.

Purpose
- Exercise real interactions with external systems (the SQL document store).

Guidelines
- Use realistic configuration and setup/teardown per test or suite.
- Minimize mocking; prefer real stores on temp-file databases.
- Mark as 'integration' and keep them slower but reliable.
"""
