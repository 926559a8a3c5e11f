"""
Services.

Business logic layer.
"""

from app.services.base_service import BaseService, log_operation

__all__ = [
    "BaseService",
    "log_operation",
]
