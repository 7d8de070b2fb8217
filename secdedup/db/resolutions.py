"""Resolution store: persisted duplicate decisions.

Rows are written once by the resolution engine and read by the downstream
publication assembler. They are never updated in place; re-resolving a date
means deleting its rows and computing them again.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import Resolution, ResolutionStats

RESOLUTION_COLUMNS = """
    id, article_id, pub_date, decision, confidence, similarity_score,
    original_article_id, original_pub_date, original_slug,
    canonical_article_id, reasoning, new_information, overlap_summary,
    resolution_method, created_at
"""


class ResolutionStore:
    """Handle article_resolutions rows."""

    def _row_to_resolution(self, row: Dict[str, Any]) -> Resolution:
        data = dict(row)
        data["new_information"] = data.get("new_information") or []
        return Resolution.model_validate(data)

    def save(self, conn: Connection, resolution: Resolution) -> bool:
        """
        Insert a resolution.

        Saving the same (article, original) pair twice is a no-op.

        Returns:
            True if a row was inserted
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO article_resolutions (
                    article_id, pub_date, decision, confidence, similarity_score,
                    original_article_id, original_pub_date, original_slug,
                    canonical_article_id, reasoning, new_information,
                    overlap_summary, resolution_method
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (article_id, (COALESCE(original_article_id, ''))) DO NOTHING
                RETURNING id
                """,
                (
                    resolution.article_id,
                    resolution.pub_date,
                    resolution.decision.value,
                    resolution.confidence.value,
                    resolution.similarity_score,
                    resolution.original_article_id,
                    resolution.original_pub_date,
                    resolution.original_slug,
                    resolution.canonical_article_id,
                    resolution.reasoning,
                    Jsonb(resolution.new_information),
                    resolution.overlap_summary,
                    resolution.resolution_method.value,
                ),
            )
            row = cur.fetchone()
            if row is None:
                return False
            resolution.id = row["id"]
            return True

    def get_by_article(self, conn: Connection, article_id: str) -> List[Resolution]:
        """Get all resolutions recorded for an article."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {RESOLUTION_COLUMNS}
                FROM article_resolutions
                WHERE article_id = %s
                ORDER BY id
                """,
                (article_id,),
            )
            return [self._row_to_resolution(row) for row in cur.fetchall()]

    def get_by_date(self, conn: Connection, pub_date: date) -> List[Resolution]:
        """Get resolutions for a publication date."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {RESOLUTION_COLUMNS}
                FROM article_resolutions
                WHERE pub_date = %s
                ORDER BY id
                """,
                (pub_date,),
            )
            return [self._row_to_resolution(row) for row in cur.fetchall()]

    def get_updates_for(self, conn: Connection, original_article_id: str) -> List[Resolution]:
        """Get the update chain of an original article, newest first."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {RESOLUTION_COLUMNS}
                FROM article_resolutions
                WHERE original_article_id = %s
                  AND decision = 'UPDATE'
                ORDER BY pub_date DESC, id DESC
                """,
                (original_article_id,),
            )
            return [self._row_to_resolution(row) for row in cur.fetchall()]

    def has_resolution(self, conn: Connection, article_id: str) -> bool:
        """Check if an article already has at least one resolution."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT 1 FROM article_resolutions WHERE article_id = %s LIMIT 1",
                (article_id,),
            )
            return cur.fetchone() is not None

    def delete_by_date(self, conn: Connection, pub_date: date) -> int:
        """Delete resolutions for a date so it can be re-processed."""
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM article_resolutions WHERE pub_date = %s",
                (pub_date,),
            )
            return cur.rowcount

    def delete_by_article(self, conn: Connection, article_id: str) -> int:
        """Delete resolutions for one article."""
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM article_resolutions WHERE article_id = %s",
                (article_id,),
            )
            return cur.rowcount

    def get_stats(
        self,
        conn: Connection,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ResolutionStats:
        """
        Get decision statistics for threshold tuning.

        Args:
            conn: Database connection
            start: Inclusive lower date bound (None for no bound)
            end: Inclusive upper date bound (None for no bound)
        """
        where = """
            WHERE (%(start)s::date IS NULL OR pub_date >= %(start)s::date)
              AND (%(end)s::date IS NULL OR pub_date <= %(end)s::date)
        """
        params = {"start": start, "end": end}

        with conn.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS count FROM article_resolutions {where}", params)
            total = cur.fetchone()["count"]

            cur.execute(
                f"""
                SELECT decision, COUNT(*) AS count, AVG(similarity_score) AS avg_score
                FROM article_resolutions {where}
                GROUP BY decision
                ORDER BY decision
                """,
                params,
            )
            decision_rows = cur.fetchall()

            cur.execute(
                f"""
                SELECT resolution_method, COUNT(*) AS count
                FROM article_resolutions {where}
                GROUP BY resolution_method
                ORDER BY resolution_method
                """,
                params,
            )
            method_rows = cur.fetchall()

        return ResolutionStats(
            total=total,
            by_decision={row["decision"]: row["count"] for row in decision_rows},
            by_method={row["resolution_method"]: row["count"] for row in method_rows},
            avg_similarity={
                row["decision"]: float(row["avg_score"] or 0.0) for row in decision_rows
            },
        )
