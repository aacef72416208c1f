#!/usr/bin/env python3
"""
Script to run the Book Catalog API server.
"""

import uvicorn

from book_catalog.config import config


def main():
    """Run the API server."""
    print("🚀 Starting Book Catalog API Server")
    print(f"📡 Host: {config.host}")
    print(f"🔌 Port: {config.port}")
    print(f"🌐 Debug: {config.debug}")
    print(f"📚 Database: {config.mongodb_database}.{config.mongodb_collection}")
    print("=" * 50)

    uvicorn.run(
        "book_catalog.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
