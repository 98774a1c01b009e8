"""
competitors.py
Domain-level sightings per SERP block, with nested extraction for AI Overview,
Featured Snippet and Local Pack blocks.
"""
from layout_models import CompetitorPresence
from serp_fields import normalize_entry, numeric_or_none


def _as_list(value):
    return value if isinstance(value, list) else []


def _has_presence(presences, domain, block_type):
    return any(p.domain == domain and p.block_type == block_type for p in presences)


def _ai_overview_presence(entry):
    return CompetitorPresence(
        domain=entry["domain"],
        block_type="ai_overview",
        position=None,
        url=entry["url"],
        title=entry["title"],
        is_in_ai_overview=True,
        is_in_featured_snippet=False,
    )


def _extract_ai_overview(raw_item, presences):
    # Element-level references are each a distinct citation context: always kept.
    for element in _as_list(raw_item.get("items")):
        if not isinstance(element, dict):
            continue
        for ref in _as_list(element.get("references")):
            entry = normalize_entry(ref, "reference")
            if entry["domain"]:
                presences.append(_ai_overview_presence(entry))

        # Older payloads put the cited source on the element itself
        entry = normalize_entry(element, "element")
        if entry["domain"] and not _has_presence(presences, entry["domain"], "ai_overview"):
            presences.append(_ai_overview_presence(entry))

    for ref in _as_list(raw_item.get("references")):
        entry = normalize_entry(ref, "reference")
        if entry["domain"] and not _has_presence(presences, entry["domain"], "ai_overview"):
            presences.append(_ai_overview_presence(entry))


def _extract_featured_snippet(raw_item, presences):
    entry = normalize_entry(raw_item, "block")
    if not entry["domain"] or _has_presence(presences, entry["domain"], "featured_snippet"):
        return
    presences.append(CompetitorPresence(
        domain=entry["domain"],
        block_type="featured_snippet",
        position=numeric_or_none(raw_item.get("rank_absolute")),
        url=entry["url"],
        title=entry["title"],
        is_in_ai_overview=False,
        is_in_featured_snippet=True,
    ))


def _extract_local_pack(raw_item, presences):
    for listing in _as_list(raw_item.get("items")):
        entry = normalize_entry(listing, "listing")
        if not entry["domain"]:
            continue
        # Local listings are not rank-ordered like organic results
        presences.append(CompetitorPresence(
            domain=entry["domain"],
            block_type="local_pack",
            position=None,
            url=entry["url"],
            title=entry["title"],
        ))


NESTED_EXTRACTORS = {
    "ai_overview": _extract_ai_overview,
    "featured_snippet": _extract_featured_snippet,
    "local_pack": _extract_local_pack,
}


def extract_competitor_presences(block, raw_item, presences):
    """
    Appends the presences for one accepted block to `presences` (the list for
    the whole parse, so duplicate checks see earlier blocks too).

    Every block carrying a domain yields a baseline presence; ai_overview,
    featured_snippet and local_pack blocks add their nested sightings.
    An empty domain never counts as a competitor.
    """
    if block.domain:
        presences.append(CompetitorPresence(
            domain=block.domain,
            block_type=block.block_type,
            position=numeric_or_none(raw_item.get("rank_absolute")) or numeric_or_none(raw_item.get("rank_group")),
            url=block.url or "",
            title=block.title or "",
            is_in_ai_overview=block.block_type == "ai_overview",
            is_in_featured_snippet=block.block_type == "featured_snippet",
        ))

    extractor = NESTED_EXTRACTORS.get(block.block_type)
    if extractor:
        extractor(raw_item, presences)
    return presences
