"""
Error taxonomy shared by the sync engine and the API layer
"""
from typing import Optional


class AdPulseError(Exception):
    """Base class for all AdPulse errors"""


class TransportError(AdPulseError):
    """HTTP-layer failure reaching the ads platform (no parseable error body)"""

    def __init__(self, status_code: Optional[int], message: Optional[str] = None):
        self.status_code = status_code
        self.message = message or f"Meta API request failed with HTTP status {status_code}"
        super().__init__(self.message)


class MetaAPIError(AdPulseError):
    """Well-formed error payload returned by the Graph API"""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        error_type: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        # Keep the platform message verbatim, callers surface it as-is
        self.message = message
        self.code = code
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(message)


class EntityNotFoundError(AdPulseError, ValueError):
    """Referenced entity does not exist or is not owned by the caller"""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class InvalidInputError(AdPulseError, ValueError):
    """Malformed input to a core operation"""
