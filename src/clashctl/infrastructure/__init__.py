"""Infrastructure layer — database, repositories, HTTP transport.

This layer depends on stdlib and third-party libs (SQLAlchemy, httpx).
It must never import from services, commands, or output.
"""
