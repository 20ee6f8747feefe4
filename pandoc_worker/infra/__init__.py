"""
Infrastructure layer - External dependencies and adapters.

This package contains all infrastructure-related modules:
- document_infra: BSON envelope codec, input staging, converter subprocess
- queue_infra: broker capability and its Redis Streams implementation
"""
