"""Request and response schemas of the live-reload HTTP surface."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body produced by the error-handling middleware."""

    error: str
    detail: str = ""


class BannerResponse(BaseModel):
    tinylr: str = "Welcome"
    version: str


class ChangedRequest(BaseModel):
    """Body of ``POST /changed``."""

    files: list[str] = []


class ChangedResponse(BaseModel):
    """Number of connected clients notified and the paths they were sent."""

    clients: int
    files: list[str]
