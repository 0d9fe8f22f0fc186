"""
Errors shared by the backend client and the logic that calls it.
"""

from typing import Optional


class BackendError(Exception):
    """Error reported by the backend, carrying its message verbatim."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status
