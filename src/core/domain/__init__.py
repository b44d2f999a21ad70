"""Domain models and entities.

- Pure, strict data structures (Pydantic v2) plus static tables (brands).
- The domain knows nothing about HTTP, zip files or the CLI.
"""
