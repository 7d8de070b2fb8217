"""Upstream publication source."""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb
from pydantic import ValidationError

from ..models import Publication


def load_publication_file(path: Path) -> List[Publication]:
    """
    Load publications from a generator JSON file.

    The file holds either a single publication object or a list of them.

    Raises:
        ValueError: If the file is not valid JSON or fails validation
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    items = data if isinstance(data, list) else [data]
    publications = []
    for item in items:
        try:
            publications.append(Publication.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"Invalid publication in {path}: {e}") from e
    return publications


class PublicationRepository:
    """Read and write rows of the publications table."""

    def _row_to_publication(self, row: Dict[str, Any]) -> Publication:
        data = row["data"] or {}
        return Publication(
            pub_id=row["pub_id"],
            pub_date=row["pub_date"],
            pub_type=row["pub_type"],
            headline=row["headline"],
            articles=data.get("articles") or [],
        )

    def save_publication(self, conn: Connection, publication: Publication) -> bool:
        """
        Insert or replace a publication.

        Returns:
            True if the publication was new
        """
        payload = publication.model_dump(mode="json")
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO publications (
                    pub_id, pub_date, pub_date_only, pub_type,
                    headline, total_articles, data
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (pub_id) DO UPDATE SET
                    pub_date = EXCLUDED.pub_date,
                    pub_date_only = EXCLUDED.pub_date_only,
                    pub_type = EXCLUDED.pub_type,
                    headline = EXCLUDED.headline,
                    total_articles = EXCLUDED.total_articles,
                    data = EXCLUDED.data
                RETURNING (xmax = 0) AS inserted
                """,
                (
                    publication.pub_id,
                    publication.pub_date,
                    publication.pub_date_only,
                    publication.pub_type,
                    publication.headline,
                    len(publication.articles),
                    Jsonb(payload),
                ),
            )
            return bool(cur.fetchone()["inserted"])

    def list_publications(
        self,
        conn: Connection,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Publication]:
        """
        List publications ordered by date.

        Args:
            conn: Database connection
            start: Inclusive lower date bound (None for no bound)
            end: Inclusive upper date bound (None for no bound)
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT pub_id, pub_date, pub_type, headline, data
                FROM publications
                WHERE (%(start)s::date IS NULL OR pub_date_only >= %(start)s::date)
                  AND (%(end)s::date IS NULL OR pub_date_only <= %(end)s::date)
                ORDER BY pub_date ASC, pub_id ASC
                """,
                {"start": start, "end": end},
            )
            return [self._row_to_publication(row) for row in cur.fetchall()]

    def list_summaries(self, conn: Connection, limit: int = 50) -> List[Dict[str, Any]]:
        """Get publication headers, newest first."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT pub_id, pub_date_only, pub_type, headline, total_articles
                FROM publications
                ORDER BY pub_date DESC
                LIMIT %s
                """,
                (limit,),
            )
            return cur.fetchall()
