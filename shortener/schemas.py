"""Pydantic schemas for request/response validation in the short-code service.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ original_url: str

    ShortenResponse (Output)
    ├─ short_code: str
    └─ short_url: str (BASE_URL + "/" + short_code)

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

Key Behaviours
===============
- original_url is stored verbatim; no canonicalization or validation is applied.
- FastAPI generates OpenAPI docs from these schemas.
"""

from pydantic import BaseModel, Field

from shortener.enums import HealthStatus

__all__ = ["HealthResponse", "ShortenRequest", "ShortenResponse"]


class ShortenRequest(BaseModel):
    original_url: str = Field(..., description="URL to shorten, stored as given")


class ShortenResponse(BaseModel):
    short_code: str
    short_url: str


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
