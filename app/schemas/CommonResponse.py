from typing import Any, Generic, Optional, TypeVar
from fastapi import status
from pydantic import BaseModel

T = TypeVar("T")

class ApiResponse(BaseModel, Generic[T]):
    success: bool
    statusCode: int
    message: str
    data: Optional[T] = None



def ok(message: str, data: Any = None, status_code: int = status.HTTP_200_OK) -> ApiResponse:
    return ApiResponse(success=True, statusCode=status_code, message=message, data=data)



def fail(message: str, status_code: int, data: Any = None) -> ApiResponse:
    return ApiResponse(success=False, statusCode=status_code, message=message, data=data)




class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_previous: bool


    
    
class PaginatedResponse(BaseModel, Generic[T]):
    data: Optional[T] = None
    meta: Optional[PageMeta] = None
    
 
 
    
class BlockRequest(BaseModel):
    is_blocked: bool
