"""
Blobstore Publisher - upload build artifacts to cloud storage profiles.

This package contains the complete application:
- core: Framework-agnostic upload pipeline (profiles, credentials, orchestration)
- infrastructure: Credential stores and storage providers
- config: Application configuration
"""

__version__ = "0.1.0"
