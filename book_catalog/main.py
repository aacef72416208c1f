"""
FastAPI main application for the Book Catalog API.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List
from urllib.parse import quote

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from book_catalog import __version__
from book_catalog.config import config
from book_catalog.database import BookDatabase, BookStore, DuplicateBookError
from book_catalog.logger import get_logger, setup_logging
from book_catalog.models import Book, ErrorResponse, HealthResponse

logger = get_logger(__name__)

BOOK_NOT_FOUND = "Book not found"
BOOK_EXISTS = "Book with ISBN already exists"
INCORRECT_BODY = "Incorrect request body"
ISBN_MISMATCH = "ISBN in request body does not match resource"
DATABASE_ERROR = "Database error"


class BookJSONResponse(JSONResponse):
    """Pretty-printed JSON with an explicit utf-8 charset."""

    media_type = "application/json; charset=utf-8"

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=1).encode("utf-8")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Catalog API")

    book_database = BookDatabase(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection
    )
    try:
        await book_database.connect()
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    app.state.book_database = book_database

    yield

    logger.info("Shutting down Book Catalog API")
    await book_database.disconnect()


async def get_book_store(request: Request) -> AsyncIterator[BookStore]:
    """Yield a store bound to a session borrowed for this request."""
    book_database: BookDatabase = request.app.state.book_database
    async with book_database.session() as store:
        yield store


async def read_book(request: Request) -> Book:
    """Decode the request body as a Book, whatever its declared content type."""
    try:
        return Book.model_validate_json(await request.body())
    except ValidationError as e:
        raise RequestValidationError(e.errors())


def _error(message: str, status_code: int, headers=None) -> BookJSONResponse:
    return BookJSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
        headers=headers
    )


def _database_error(operation: str, error: Exception, **context) -> HTTPException:
    logger.error(f"Failed to {operation}", error=str(error), **context)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=DATABASE_ERROR
    )


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    default_response_class=BookJSONResponse,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as ``{"message": ...}``."""
    return _error(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or mistyped request bodies are client errors."""
    logger.info("Rejected request body", path=request.url.path, errors=len(exc.errors()))
    return _error(INCORRECT_BODY, status.HTTP_400_BAD_REQUEST)


@app.exception_handler(PyMongoError)
async def database_exception_handler(request: Request, exc: PyMongoError):
    """Handle driver failures raised outside the endpoints, e.g. while starting a session."""
    logger.error("Database failure", error=str(exc), path=request.url.path)
    return _error(DATABASE_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    message = f"Internal server error: {exc}" if config.debug else "Internal server error"
    return _error(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    book_database = getattr(request.app.state, "book_database", None)
    if book_database:
        health_info = await book_database.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        database_status=db_status
    )


# Books endpoints
@app.get("/books", response_model=List[Book], tags=["Books"])
async def list_books(store: BookStore = Depends(get_book_store)):
    """Get every book in the catalog."""
    try:
        books = await store.list_books()
    except PyMongoError as e:
        raise _database_error("get all books", e)

    return BookJSONResponse(content=[book.model_dump() for book in books])


@app.post("/books", status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    request: Request,
    book: Book = Depends(read_book),
    store: BookStore = Depends(get_book_store)
):
    """
    Add a book to the catalog.

    Responds with a ``Location`` header pointing at the new resource.
    """
    try:
        await store.create_book(book)
    except DuplicateBookError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=BOOK_EXISTS)
    except PyMongoError as e:
        raise _database_error("insert book", e, isbn=book.isbn)

    location = request.url.path.rstrip("/") + "/" + quote(book.isbn, safe="")
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": location},
        media_type=BookJSONResponse.media_type
    )


@app.get("/books/{isbn:path}", response_model=Book, tags=["Books"])
async def get_book(isbn: str, store: BookStore = Depends(get_book_store)):
    """Get a single book by ISBN."""
    try:
        book = await store.get_book(isbn)
    except PyMongoError as e:
        raise _database_error("find book", e, isbn=isbn)

    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)

    return BookJSONResponse(content=book.model_dump())


@app.put("/books/{isbn:path}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def update_book(
    isbn: str,
    book: Book = Depends(read_book),
    store: BookStore = Depends(get_book_store)
):
    """
    Replace a book with the request body.

    The body's ``isbn`` must equal the one in the path; identifiers cannot be changed.
    """
    if book.isbn != isbn:
        logger.info("Rejected ISBN change", isbn=isbn, body_isbn=book.isbn)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ISBN_MISMATCH)

    try:
        updated = await store.replace_book(isbn, book)
    except PyMongoError as e:
        raise _database_error("update book", e, isbn=isbn)

    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/books/{isbn:path}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def delete_book(isbn: str, store: BookStore = Depends(get_book_store)):
    """Delete a book by ISBN."""
    try:
        deleted = await store.delete_book(isbn)
    except PyMongoError as e:
        raise _database_error("delete book", e, isbn=isbn)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
