"""Threshold classification of similarity scores."""

from enum import Enum

NEW_CEILING = 0.35
DEFAULT_UPDATE_THRESHOLD = 0.70


class Classification(str, Enum):
    """Band a similarity score falls into."""

    NEW = "NEW"
    BORDERLINE = "BORDERLINE"
    UPDATE = "UPDATE"


def classify(
    score: float,
    threshold: float = DEFAULT_UPDATE_THRESHOLD,
    borderline_floor: float = NEW_CEILING,
) -> Classification:
    """
    Classify a weighted similarity score.

    Both bounds are inclusive on the lower side: ``borderline_floor`` itself is
    BORDERLINE and ``threshold`` itself is UPDATE.
    """
    if score < borderline_floor:
        return Classification.NEW
    if score >= threshold:
        return Classification.UPDATE
    return Classification.BORDERLINE
