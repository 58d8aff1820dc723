"""
API Schemas
===========

Request bodies and the response envelope.

Request fields are optional at the schema level so missing values reach
the lifecycle engine and come back with its messages (400), rather than
as framework validation errors.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


# =============================================================================
# REPORTS
# =============================================================================

class LocationUpdate(BaseModel):
    """PATCH /{kind}s/{id}/location"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class CommentUpdate(BaseModel):
    """PATCH /{kind}s/{id}/comment"""
    description: Optional[str] = None


class StatusUpdate(BaseModel):
    """PATCH /{kind}s/{id}/status (admin)"""
    status: Optional[str] = Field(None, description="under-investigation | rejected | resolved")


# =============================================================================
# AUTH
# =============================================================================

class SignupRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


# =============================================================================
# ENVELOPE
# =============================================================================

# Every response: {status, data} on success, {status, error} on failure

def success(status: int, data: Any) -> dict:
    return {"status": status, "data": data if isinstance(data, list) else [data]}


def failure(status: int, error: str) -> dict:
    return {"status": status, "error": error}
