"""Article fingerprinting into the entity/CVE index."""

from .indexer import ArticleIndexer, IndexReport, build_index_rows

__all__ = ["ArticleIndexer", "IndexReport", "build_index_rows"]
