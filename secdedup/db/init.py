"""Database initialization and schema management."""

from psycopg.errors import DatabaseError
from rich.console import Console

from .connection import Database

console = Console()


SCHEMA_SQL = """
-- Publications written by the upstream generator
CREATE TABLE IF NOT EXISTS publications (
    pub_id TEXT PRIMARY KEY,
    pub_date TIMESTAMPTZ NOT NULL,
    pub_date_only DATE NOT NULL,
    pub_type TEXT NOT NULL DEFAULT 'daily',
    headline TEXT NOT NULL DEFAULT '',
    total_articles INTEGER NOT NULL DEFAULT 0,
    data JSONB NOT NULL,
    generated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Minimal article metadata for fingerprinting
CREATE TABLE IF NOT EXISTS articles_meta (
    article_id TEXT PRIMARY KEY,
    pub_id TEXT NOT NULL REFERENCES publications(pub_id) ON DELETE CASCADE,
    pub_date_only DATE NOT NULL,
    slug TEXT NOT NULL,
    summary TEXT NOT NULL,
    full_report TEXT,
    indexed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- CVEs: primary campaign identifier
CREATE TABLE IF NOT EXISTS article_cves (
    article_id TEXT NOT NULL REFERENCES articles_meta(article_id) ON DELETE CASCADE,
    cve_id TEXT NOT NULL,
    cvss_score DOUBLE PRECISION CHECK (cvss_score IS NULL OR (cvss_score >= 0 AND cvss_score <= 10)),
    severity TEXT,
    kev BOOLEAN NOT NULL DEFAULT FALSE,
    PRIMARY KEY (article_id, cve_id)
);

-- Named entities, restricted to the indexed types
CREATE TABLE IF NOT EXISTS article_entities (
    article_id TEXT NOT NULL REFERENCES articles_meta(article_id) ON DELETE CASCADE,
    entity_name TEXT NOT NULL,
    entity_type TEXT NOT NULL CHECK (
        entity_type IN ('threat_actor', 'malware', 'product', 'company', 'government_agency')
    ),
    PRIMARY KEY (article_id, entity_type, entity_name)
);

-- Duplicate resolution decisions
CREATE TABLE IF NOT EXISTS article_resolutions (
    id SERIAL PRIMARY KEY,
    article_id TEXT NOT NULL REFERENCES articles_meta(article_id) ON DELETE CASCADE,
    pub_date DATE NOT NULL,
    decision TEXT NOT NULL CHECK (decision IN ('NEW', 'UPDATE', 'SKIP')),
    confidence TEXT NOT NULL CHECK (confidence IN ('high', 'medium', 'low')),
    similarity_score DOUBLE PRECISION NOT NULL CHECK (similarity_score >= 0 AND similarity_score <= 1),
    original_article_id TEXT,
    original_pub_date DATE,
    original_slug TEXT,
    canonical_article_id TEXT,
    reasoning TEXT,
    new_information JSONB NOT NULL DEFAULT '[]'::jsonb,
    overlap_summary TEXT,
    resolution_method TEXT NOT NULL CHECK (resolution_method IN ('automatic', 'llm')),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (
        (decision = 'NEW' AND canonical_article_id = article_id)
        OR (decision = 'UPDATE' AND original_article_id IS NOT NULL
            AND canonical_article_id = original_article_id)
        OR (decision = 'SKIP' AND canonical_article_id IS NULL)
    )
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_publications_date_only ON publications(pub_date_only);
CREATE INDEX IF NOT EXISTS idx_articles_meta_pub_id ON articles_meta(pub_id);
CREATE INDEX IF NOT EXISTS idx_articles_meta_date ON articles_meta(pub_date_only);
CREATE INDEX IF NOT EXISTS idx_article_cves_cve ON article_cves(cve_id);
CREATE INDEX IF NOT EXISTS idx_article_entities_name ON article_entities(lower(entity_name));
CREATE INDEX IF NOT EXISTS idx_article_entities_type ON article_entities(entity_type);
CREATE UNIQUE INDEX IF NOT EXISTS uq_article_resolutions_pair
    ON article_resolutions(article_id, (COALESCE(original_article_id, '')));
CREATE INDEX IF NOT EXISTS idx_article_resolutions_pub_date ON article_resolutions(pub_date);
CREATE INDEX IF NOT EXISTS idx_article_resolutions_original
    ON article_resolutions(original_article_id) WHERE original_article_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_article_resolutions_method
    ON article_resolutions(resolution_method, decision);
"""


def validate_connection(db: Database) -> bool:
    """Validate database connection."""
    try:
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        return False


def init_database(db: Database) -> None:
    """Initialize database schema."""
    try:
        with db.transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
    except DatabaseError as e:
        console.print(f"[red]Failed to initialize database schema: {e}[/red]")
        raise
