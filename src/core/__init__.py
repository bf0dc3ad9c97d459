"""
Core business logic for blobstore publishing.

This module is framework-agnostic - it doesn't import boto3, pydantic, or
any infrastructure concerns. Storage providers and credential stores are
reached through protocols, so the upload pipeline can be tested against
in-memory fakes.
"""
