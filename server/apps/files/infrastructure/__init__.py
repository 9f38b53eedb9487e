"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Storage driver configuration resolution
- S3-compatible storage backends and their boto3 clients

Keep infrastructure concerns separate from business logic.
"""
