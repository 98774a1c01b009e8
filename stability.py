"""
stability.py
Layout stability score (0-100) of a parsed SERP against the last stored snapshot.
"""
import math

ORGANIC_SHIFT_PENALTY_PER_POSITION = 5
ORGANIC_SHIFT_PENALTY_CAP = 25
LAYOUT_SIMILARITY_WEIGHT = 35

# Flag flips, each subtracted independently
FLAG_PENALTIES = [
    ("has_ai_overview", 15),
    ("has_featured_snippet", 10),
    ("has_local_pack", 10),
    ("has_people_also_ask", 5),
]


def layout_similarity(current_types, previous_types):
    """Jaccard similarity of two block-type sets, scaled to the layout weight."""
    union = current_types | previous_types
    if not union:
        return LAYOUT_SIMILARITY_WEIGHT
    return LAYOUT_SIMILARITY_WEIGHT * len(current_types & previous_types) / len(union)


def calculate_stability_score(current, previous=None):
    """
    Scores how similar `current` is to `previous` (100 = unchanged).

    Without a previous snapshot the keyword is a fresh baseline and scores 100.
    Otherwise each factor subtracts on its own: organic start shift
    (5 per position, capped at 25), feature flag flips, and the missing share
    of the layout-type overlap. The total is clamped to 0-100 and rounded
    half up.
    """
    if previous is None:
        return 100

    score = 100.0

    shift = abs(current.organic_start_position - previous.organic_start_position)
    score -= min(ORGANIC_SHIFT_PENALTY_PER_POSITION * shift, ORGANIC_SHIFT_PENALTY_CAP)

    for flag, penalty in FLAG_PENALTIES:
        if bool(getattr(current, flag)) != bool(getattr(previous, flag)):
            score -= penalty

    score -= LAYOUT_SIMILARITY_WEIGHT - layout_similarity(
        current.block_types(), previous.block_types())

    score = max(0.0, min(100.0, score))
    return int(math.floor(score + 0.5))
