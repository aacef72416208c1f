"""
Pytest configuration and shared fixtures.
"""

from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from book_catalog.database import BookStore, DuplicateBookError
from book_catalog.main import app, get_book_store
from book_catalog.models import Book


class InMemoryBookStore:
    """Dict-backed stand-in for BookStore with the same outcomes."""

    def __init__(self):
        self.books: Dict[str, Book] = {}
        self.calls: List[str] = []

    async def list_books(self) -> List[Book]:
        self.calls.append("list_books")
        return list(self.books.values())

    async def get_book(self, isbn: str) -> Optional[Book]:
        self.calls.append("get_book")
        return self.books.get(isbn)

    async def create_book(self, book: Book) -> None:
        self.calls.append("create_book")
        if book.isbn in self.books:
            raise DuplicateBookError(book.isbn)
        self.books[book.isbn] = book.model_copy()

    async def replace_book(self, isbn: str, book: Book) -> bool:
        self.calls.append("replace_book")
        if isbn not in self.books:
            return False
        self.books[isbn] = book.model_copy()
        return True

    async def delete_book(self, isbn: str) -> bool:
        self.calls.append("delete_book")
        return self.books.pop(isbn, None) is not None


def _client_for(store) -> TestClient:
    async def override_book_store():
        yield store

    app.dependency_overrides[get_book_store] = override_book_store
    return TestClient(app)


@pytest.fixture
def book_store():
    """Create an empty in-memory book store."""
    return InMemoryBookStore()


@pytest.fixture
def client(book_store):
    """Create test client wired to the in-memory store."""
    yield _client_for(book_store)
    app.dependency_overrides.clear()


@pytest.fixture
def failing_store():
    """Create a store whose every operation raises a driver error."""
    from pymongo.errors import PyMongoError

    store = AsyncMock(spec=BookStore)
    for method in ("list_books", "get_book", "create_book", "replace_book", "delete_book"):
        getattr(store, method).side_effect = PyMongoError("connection reset")
    return store


@pytest.fixture
def failing_client(failing_store):
    """Create test client wired to the failing store."""
    yield _client_for(failing_store)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_book():
    """Create sample book payload for testing."""
    return {"isbn": "111", "title": "A", "authors": "X", "price": "$1"}


@pytest.fixture
def mock_collection():
    """Create a mock motor collection."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.replace_one = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.create_index = AsyncMock(return_value="isbn_1")
    return collection
