"""
Response envelopes shared by all routers
"""
from typing import Optional, Generic, TypeVar, List, Any
from pydantic import BaseModel

T = TypeVar("T")


class ResponseBase(BaseModel):
    """Base response model"""
    success: bool = True
    message: Optional[str] = None


class DataResponse(ResponseBase, Generic[T]):
    """Single payload (object, list or scalar)"""
    data: Optional[T] = None


class ListResponse(ResponseBase, Generic[T]):
    """Unpaginated collection with its size"""
    data: List[T] = []
    total: int = 0


class ErrorResponse(BaseModel):
    """Body of every mapped error (404 / 400 / 502)"""
    success: bool = False
    error: str
    detail: Optional[Any] = None
