"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- credentials: Credential stores (JSON file, in-memory)
- storage: Storage providers (S3, filesystem, transient) and the context factory

These wrappers translate between external formats and our domain models.
"""
