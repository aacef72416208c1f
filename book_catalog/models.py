"""
API models and schemas for the book catalog.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    """A book record as stored in the ``books`` collection and exchanged over HTTP."""
    isbn: str = Field("", description="Unique book identifier")
    title: str = Field("", description="Book title")
    authors: str = Field("", description="Book authors as free text")
    price: str = Field("", description="Formatted price, e.g. $34.57")

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "isbn": "0134190440",
                "title": "The Go Programming Language",
                "authors": "Alan A. A. Donovan, Brian W. Kernighan",
                "price": "$34.57",
            }
        },
    )


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
