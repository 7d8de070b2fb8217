"""Batch selection: which articles or publications a command operates on."""

from datetime import date
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, model_validator


class SelectionMode(str, Enum):
    """How a batch is selected."""

    ALL = "all"
    DATE = "date"
    RANGE = "range"
    ARTICLE = "article"


class Selection(BaseModel):
    """A validated batch selector."""

    mode: SelectionMode
    day: Optional[date] = Field(None, description="Single publication date")
    start: Optional[date] = Field(None, description="Inclusive range start")
    end: Optional[date] = Field(None, description="Inclusive range end")
    article_id: Optional[str] = Field(None, description="Single article")

    @model_validator(mode="after")
    def validate_mode(self) -> "Selection":
        if self.mode == SelectionMode.DATE and self.day is None:
            raise ValueError("date selection requires a date")
        if self.mode == SelectionMode.RANGE:
            if self.start is None or self.end is None:
                raise ValueError("range selection requires both start and end")
            if self.start > self.end:
                raise ValueError("range start must not be after range end")
        if self.mode == SelectionMode.ARTICLE and not self.article_id:
            raise ValueError("article selection requires an article id")
        return self

    @classmethod
    def all(cls) -> "Selection":
        return cls(mode=SelectionMode.ALL)

    @classmethod
    def for_date(cls, day: date) -> "Selection":
        return cls(mode=SelectionMode.DATE, day=day)

    @classmethod
    def for_range(cls, start: date, end: date) -> "Selection":
        return cls(mode=SelectionMode.RANGE, start=start, end=end)

    @classmethod
    def for_article(cls, article_id: str) -> "Selection":
        return cls(mode=SelectionMode.ARTICLE, article_id=article_id)

    @property
    def date_bounds(self) -> Tuple[Optional[date], Optional[date]]:
        """Inclusive (start, end) date bounds; (None, None) means unbounded."""
        if self.mode == SelectionMode.DATE:
            return self.day, self.day
        if self.mode == SelectionMode.RANGE:
            return self.start, self.end
        return None, None

    def describe(self) -> str:
        if self.mode == SelectionMode.DATE:
            return f"date {self.day}"
        if self.mode == SelectionMode.RANGE:
            return f"{self.start} to {self.end}"
        if self.mode == SelectionMode.ARTICLE:
            return f"article {self.article_id}"
        return "all"
