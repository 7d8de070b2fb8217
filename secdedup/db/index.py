"""Entity/CVE index storage."""

from datetime import date
from typing import Dict, Iterable, List, Optional

from psycopg import Connection

from ..models import (
    ArticleData,
    ArticleIndexRecord,
    EntityType,
    IndexedCVE,
    IndexedEntity,
    IndexStats,
)


class ArticleIndexRepository:
    """Handle articles_meta, article_cves and article_entities rows."""

    def is_indexed(self, conn: Connection, article_id: str) -> bool:
        """Check if an article already has a metadata row."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT 1 FROM articles_meta WHERE article_id = %s",
                (article_id,),
            )
            return cur.fetchone() is not None

    def insert_meta(self, conn: Connection, record: ArticleIndexRecord) -> bool:
        """
        Insert article metadata.

        Returns:
            True if a row was inserted, False if the article was already indexed
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO articles_meta (
                    article_id, pub_id, pub_date_only, slug, summary, full_report
                ) VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (article_id) DO NOTHING
                """,
                (
                    record.article_id,
                    record.pub_id,
                    record.pub_date_only,
                    record.slug,
                    record.summary,
                    record.full_report,
                ),
            )
            return cur.rowcount == 1

    def insert_cves(self, conn: Connection, cves: List[IndexedCVE]) -> int:
        """Insert CVE rows, ignoring duplicates."""
        if not cves:
            return 0
        with conn.cursor() as cur:
            cur.executemany(
                """
                INSERT INTO article_cves (article_id, cve_id, cvss_score, severity, kev)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (article_id, cve_id) DO NOTHING
                """,
                [(c.article_id, c.cve_id, c.cvss_score, c.severity, c.kev) for c in cves],
            )
        return len(cves)

    def insert_entities(self, conn: Connection, entities: List[IndexedEntity]) -> int:
        """Insert entity rows, ignoring duplicates."""
        if not entities:
            return 0
        with conn.cursor() as cur:
            cur.executemany(
                """
                INSERT INTO article_entities (article_id, entity_name, entity_type)
                VALUES (%s, %s, %s)
                ON CONFLICT (article_id, entity_type, entity_name) DO NOTHING
                """,
                [(e.article_id, e.entity_name, e.entity_type.value) for e in entities],
            )
        return len(entities)

    def delete_article(self, conn: Connection, article_id: str) -> bool:
        """Delete an article's metadata; CVEs, entities and resolutions cascade."""
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM articles_meta WHERE article_id = %s",
                (article_id,),
            )
            return cur.rowcount > 0

    def get_article(self, conn: Connection, article_id: str) -> Optional[ArticleData]:
        """Load one indexed article with its CVEs and entities."""
        articles = self.get_articles(conn, [article_id])
        return articles[0] if articles else None

    def get_articles(self, conn: Connection, article_ids: Iterable[str]) -> List[ArticleData]:
        """
        Load indexed articles with their CVEs and entities.

        Returns:
            Articles in the order of ``article_ids``; unknown ids are omitted
        """
        ids = list(dict.fromkeys(article_ids))
        if not ids:
            return []

        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT article_id, pub_id, pub_date_only, slug, summary, full_report
                FROM articles_meta
                WHERE article_id = ANY(%s::text[])
                """,
                (ids,),
            )
            metas = {row["article_id"]: ArticleIndexRecord(**row) for row in cur.fetchall()}

            cur.execute(
                """
                SELECT article_id, cve_id, cvss_score, severity, kev
                FROM article_cves
                WHERE article_id = ANY(%s::text[])
                ORDER BY cve_id
                """,
                (ids,),
            )
            cves: Dict[str, List[IndexedCVE]] = {}
            for row in cur.fetchall():
                cves.setdefault(row["article_id"], []).append(IndexedCVE(**row))

            cur.execute(
                """
                SELECT article_id, entity_name, entity_type
                FROM article_entities
                WHERE article_id = ANY(%s::text[])
                ORDER BY entity_type, entity_name
                """,
                (ids,),
            )
            entities: Dict[str, List[IndexedEntity]] = {}
            for row in cur.fetchall():
                entities.setdefault(row["article_id"], []).append(
                    IndexedEntity(
                        article_id=row["article_id"],
                        entity_name=row["entity_name"],
                        entity_type=EntityType(row["entity_type"]),
                    )
                )

        return [
            ArticleData(
                meta=metas[article_id],
                cves=cves.get(article_id, []),
                entities=entities.get(article_id, []),
            )
            for article_id in ids
            if article_id in metas
        ]

    def list_article_ids(
        self,
        conn: Connection,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[str]:
        """
        List indexed article ids in publication order.

        Args:
            conn: Database connection
            start: Inclusive lower date bound (None for no bound)
            end: Inclusive upper date bound (None for no bound)
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT article_id
                FROM articles_meta
                WHERE (%(start)s::date IS NULL OR pub_date_only >= %(start)s::date)
                  AND (%(end)s::date IS NULL OR pub_date_only <= %(end)s::date)
                ORDER BY pub_date_only ASC, indexed_at ASC, article_id ASC
                """,
                {"start": start, "end": end},
            )
            return [row["article_id"] for row in cur.fetchall()]

    def find_overlapping_ids(
        self,
        conn: Connection,
        article_id: str,
        start: date,
        end: date,
        cve_ids: Iterable[str],
        entity_names: Iterable[str],
    ) -> List[str]:
        """
        Find articles in ``[start, end)`` sharing a CVE or entity name.

        Entity names are compared case-insensitively. The article itself is
        never returned.
        """
        cve_list = sorted(set(cve_ids))
        name_list = sorted({name.lower() for name in entity_names})
        if not cve_list and not name_list:
            return []

        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT m.article_id
                FROM articles_meta m
                WHERE m.pub_date_only >= %(start)s
                  AND m.pub_date_only < %(end)s
                  AND m.article_id <> %(article_id)s
                  AND (
                    EXISTS (
                        SELECT 1 FROM article_cves c
                        WHERE c.article_id = m.article_id
                          AND c.cve_id = ANY(%(cve_ids)s::text[])
                    )
                    OR EXISTS (
                        SELECT 1 FROM article_entities e
                        WHERE e.article_id = m.article_id
                          AND lower(e.entity_name) = ANY(%(names)s::text[])
                    )
                  )
                ORDER BY m.pub_date_only DESC, m.article_id ASC
                """,
                {
                    "start": start,
                    "end": end,
                    "article_id": article_id,
                    "cve_ids": cve_list,
                    "names": name_list,
                },
            )
            return [row["article_id"] for row in cur.fetchall()]

    def get_stats(self, conn: Connection) -> IndexStats:
        """Get overall index statistics."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT
                    COUNT(*) AS total_articles,
                    COUNT(DISTINCT pub_id) AS total_publications,
                    MIN(pub_date_only) AS oldest_date,
                    MAX(pub_date_only) AS newest_date
                FROM articles_meta
                """
            )
            meta = cur.fetchone()

            cur.execute(
                """
                SELECT COUNT(*) AS total_cves, COUNT(DISTINCT cve_id) AS unique_cves
                FROM article_cves
                """
            )
            cve_row = cur.fetchone()

            cur.execute(
                """
                SELECT
                    COUNT(*) AS total_entities,
                    COUNT(DISTINCT lower(entity_name)) AS unique_entities
                FROM article_entities
                """
            )
            entity_row = cur.fetchone()

            cur.execute(
                """
                SELECT entity_type, COUNT(*) AS count
                FROM article_entities
                GROUP BY entity_type
                ORDER BY count DESC
                """
            )
            type_counts = {row["entity_type"]: row["count"] for row in cur.fetchall()}

        return IndexStats(
            total_articles=meta["total_articles"],
            total_publications=meta["total_publications"],
            total_cves=cve_row["total_cves"],
            unique_cves=cve_row["unique_cves"],
            total_entities=entity_row["total_entities"],
            unique_entities=entity_row["unique_entities"],
            oldest_date=meta["oldest_date"],
            newest_date=meta["newest_date"],
            entity_type_counts=type_counts,
        )
