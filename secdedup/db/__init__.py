"""Database management for secdedup."""

from .connection import Database, DatabaseConfig
from .index import ArticleIndexRepository
from .init import init_database, validate_connection
from .publications import PublicationRepository, load_publication_file
from .resolutions import ResolutionStore

__all__ = [
    "ArticleIndexRepository",
    "Database",
    "DatabaseConfig",
    "PublicationRepository",
    "ResolutionStore",
    "init_database",
    "load_publication_file",
    "validate_connection",
]
