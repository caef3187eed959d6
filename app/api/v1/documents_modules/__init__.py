"""
Document API modules.

Modules:
- document_download: Access-checked download redirects
- common: Shared utilities and dependencies
"""

__all__ = []
