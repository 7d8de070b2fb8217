"""Data models for secdedup."""

from .article import CVE, Article, Entity, Publication
from .entities import EntityType, normalize_entity_type
from .index import ArticleData, ArticleIndexRecord, IndexedCVE, IndexedEntity, IndexStats
from .outcome import Outcome, OutcomeStatus
from .resolution import Confidence, Decision, Resolution, ResolutionMethod, ResolutionStats
from .selection import Selection, SelectionMode

__all__ = [
    "Article",
    "ArticleData",
    "ArticleIndexRecord",
    "CVE",
    "Confidence",
    "Decision",
    "Entity",
    "EntityType",
    "IndexStats",
    "IndexedCVE",
    "IndexedEntity",
    "Outcome",
    "OutcomeStatus",
    "Publication",
    "Resolution",
    "ResolutionMethod",
    "ResolutionStats",
    "Selection",
    "SelectionMode",
    "normalize_entity_type",
]
