"""
Test cases for the API models.
"""

import pytest
from pydantic import ValidationError

from book_catalog.models import Book, ErrorResponse


class TestBook:
    """Test cases for Book model."""

    def test_valid_book(self):
        """Test creating a book with all fields."""
        book = Book(isbn="0321774639", title="Programming in Go", authors="Mark Summerfield", price="$34.57")
        assert book.model_dump() == {
            "isbn": "0321774639",
            "title": "Programming in Go",
            "authors": "Mark Summerfield",
            "price": "$34.57",
        }

    def test_missing_fields_default_to_empty(self):
        """Test that omitted fields become empty strings."""
        book = Book.model_validate({"title": "Untitled"})
        assert book.isbn == ""
        assert book.authors == ""
        assert book.price == ""

    def test_unknown_fields_ignored(self):
        """Test that extra fields, such as Mongo's _id, are dropped."""
        book = Book.model_validate({"_id": "abc", "isbn": "1", "rating": 5})
        assert "rating" not in book.model_dump()
        assert "_id" not in book.model_dump()

    def test_price_must_be_text(self):
        """Test that a numeric price is rejected."""
        with pytest.raises(ValidationError):
            Book.model_validate({"isbn": "1", "price": 34.57})

    def test_authors_must_be_text(self):
        """Test that an author list is rejected."""
        with pytest.raises(ValidationError):
            Book.model_validate({"isbn": "1", "authors": ["A", "B"]})


class TestErrorResponse:
    """Test cases for ErrorResponse model."""

    def test_message_required(self):
        """Test that the message is required."""
        with pytest.raises(ValidationError):
            ErrorResponse()

    def test_json_escapes_quotes(self):
        """Test that quotes are escaped in the JSON form."""
        error = ErrorResponse(message='ISBN "111" taken')
        assert error.model_dump_json() == '{"message":"ISBN \\"111\\" taken"}'
