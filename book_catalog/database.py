"""
MongoDB access layer for the book catalog.
Handles the shared client, index creation and per-request sessions.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorCollection, AsyncIOMotorDatabase
)
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from book_catalog.logger import get_logger
from book_catalog.models import Book

logger = get_logger(__name__)

# Never expose MongoDB's internal identifier
BOOK_PROJECTION = {"_id": 0}


class DuplicateBookError(Exception):
    """Raised when a write collides with the unique index on ``isbn``."""

    def __init__(self, isbn: str):
        super().__init__(f"Book with ISBN {isbn!r} already exists")
        self.isbn = isbn


class BookStore:
    """
    Document operations on the books collection, bound to one client session.

    Not-found is reported through the return value (``None`` or ``False``);
    any other driver failure propagates as a ``PyMongoError``.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        session: Optional[AsyncIOMotorClientSession] = None
    ):
        self.collection = collection
        self.session = session

    async def list_books(self) -> List[Book]:
        """Return every book in the collection."""
        cursor = self.collection.find({}, BOOK_PROJECTION, session=self.session)
        docs = await cursor.to_list(length=None)
        logger.debug("Retrieved all books", count=len(docs))
        return [Book.model_validate(doc) for doc in docs]

    async def get_book(self, isbn: str) -> Optional[Book]:
        """
        Find a single book by ISBN.

        Args:
            isbn: Identifier to look up

        Returns:
            Book if found, None otherwise
        """
        doc = await self.collection.find_one({"isbn": isbn}, BOOK_PROJECTION, session=self.session)
        if doc is None:
            return None
        return Book.model_validate(doc)

    async def create_book(self, book: Book) -> None:
        """
        Insert a new book.

        Raises:
            DuplicateBookError: if a book with the same ISBN already exists
        """
        try:
            await self.collection.insert_one(book.model_dump(), session=self.session)
        except DuplicateKeyError:
            logger.warning("Book already exists", isbn=book.isbn)
            raise DuplicateBookError(book.isbn)
        logger.debug("Successfully inserted book", isbn=book.isbn)

    async def replace_book(self, isbn: str, book: Book) -> bool:
        """
        Replace the whole document of the book matching ``isbn``.

        Returns:
            bool: True if a book matched, False if not found
        """
        result = await self.collection.replace_one(
            {"isbn": isbn}, book.model_dump(), session=self.session
        )
        if result.matched_count == 0:
            logger.info("Book not found for update", isbn=isbn)
            return False
        logger.debug("Successfully updated book", isbn=isbn)
        return True

    async def delete_book(self, isbn: str) -> bool:
        """
        Delete the book matching ``isbn``.

        Returns:
            bool: True if deleted, False if not found
        """
        result = await self.collection.delete_one({"isbn": isbn}, session=self.session)
        if result.deleted_count == 0:
            logger.info("Book not found for deletion", isbn=isbn)
            return False
        logger.debug("Successfully deleted book", isbn=isbn)
        return True


class BookDatabase:
    """
    Owns the long-lived MongoDB client and hands out per-request stores.
    """

    def __init__(self, connection_url: str, database_name: str, collection_name: str):
        """
        Initialize the database holder.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish the connection and make sure the ISBN index exists."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

        await self._create_indexes()

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create the unique, sparse index on ``isbn``."""
        try:
            await self.collection.create_index(
                "isbn", unique=True, sparse=True, background=True
            )
            logger.info("Successfully created MongoDB indexes", collection=self.collection_name)
        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BookStore]:
        """
        Borrow a client session from the pool for the duration of one request.

        The session is ended on every exit path, including errors.
        """
        async with await self.client.start_session() as session:
            yield BookStore(self.collection, session)

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
