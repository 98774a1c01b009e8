"""
layout_parser.py
Turns the ordered raw item list of one SERP into a ParsedSerpResult:
layout stack, organic start position, feature flags, parsed blocks,
competitor presences and AI Overview citations.
"""
from block_types import normalize_block_type
from citations import extract_ai_overview_citations
from competitors import extract_competitor_presences
from layout_models import LayoutBlockEntry, ParsedBlock, ParsedSerpResult, ParsedSubItem
from serp_fields import extract_domain, clean_domain, numeric_or_none

AI_TEXT_MAX_CHARS = 2000

# block type -> feature flag raised on first sighting
FEATURE_FLAGS = {
    "ai_overview": "has_ai_overview",
    "featured_snippet": "has_featured_snippet",
    "local_pack": "has_local_pack",
    "people_also_ask": "has_people_also_ask",
    "video_carousel": "has_video_carousel",
    "ads_top": "has_ads",
    "ads_bottom": "has_ads",
}


def _text(value):
    return value if isinstance(value, str) else None


def extract_ai_overview_text(item):
    """
    Flattens an AI Overview item into a single text, capped at 2000 chars.
    Uses the item's own text/title/description, then each element's
    text, snippet or title. Returns None when nothing is found.
    """
    parts = [item.get(key) for key in ("text", "title", "description")]

    elements = item.get("items")
    if isinstance(elements, list):
        for element in elements:
            if not isinstance(element, dict):
                continue
            parts.append(element.get("text") or element.get("snippet") or element.get("title"))

    combined = " ".join(p for p in parts if isinstance(p, str) and p).strip()
    return combined[:AI_TEXT_MAX_CHARS] if combined else None


def _featured_snippet_text(item):
    for key in ("description", "text", "snippet"):
        value = item.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _parse_sub_items(item):
    sub_items = item.get("items")
    if not isinstance(sub_items, list):
        return None
    parsed = []
    for idx, sub in enumerate(sub_items):
        sub = sub if isinstance(sub, dict) else {}
        url = _text(sub.get("url")) or ""
        parsed.append(ParsedSubItem(
            position=idx + 1,
            title=_text(sub.get("title")) or "",
            url=url,
            domain=extract_domain(url),
        ))
    return parsed


def _parse_block(item, block_type, block_index):
    block = ParsedBlock(
        block_type=block_type,
        block_index=block_index,
        rank_absolute=numeric_or_none(item.get("rank_absolute")) or 0,
        title=_text(item.get("title")),
        url=_text(item.get("url")),
        domain=clean_domain(item.get("domain")) or None,
        description=_text(item.get("description")),
        items=_parse_sub_items(item),
    )
    if block_type == "ai_overview":
        block.ai_overview_text = extract_ai_overview_text(item)
    elif block_type == "featured_snippet":
        block.featured_snippet_text = _featured_snippet_text(item)
    return block


def parse_serp_items(serp_items, keyword, source_namer=None):
    """
    Parses one keyword's raw SERP items.

    Unknown or ignored provider types are skipped entirely. Every accepted item
    gets a dense 0-based block index; a block type enters the layout stack at
    its first sighting (position = index + 1). The organic start position is the
    first organic item's absolute rank (index + 1 when the rank is missing), or
    accepted block count + 1 when no organic result exists.

    Pure: identical input yields an identical result.
    """
    result = ParsedSerpResult(keyword=keyword)
    seen_block_types = set()
    first_organic_index = None

    for item in serp_items or []:
        if not isinstance(item, dict):
            continue
        block_type = normalize_block_type(item.get("type"))
        if block_type is None:
            continue

        block_index = len(result.blocks)

        if block_type not in seen_block_types:
            seen_block_types.add(block_type)
            result.layout_stack.append(LayoutBlockEntry(
                block_type=block_type, position=block_index + 1, result_count=1))

        flag = FEATURE_FLAGS.get(block_type)
        if flag:
            setattr(result, flag, True)

        if block_type == "organic" and first_organic_index is None:
            first_organic_index = block_index
            result.organic_start_position = (
                numeric_or_none(item.get("rank_absolute")) or block_index + 1)

        block = _parse_block(item, block_type, block_index)
        result.blocks.append(block)

        extract_competitor_presences(block, item, result.competitor_presences)
        if block_type == "ai_overview":
            result.ai_overview_references.extend(
                extract_ai_overview_citations(item, source_namer))

    if first_organic_index is None:
        result.organic_start_position = len(result.blocks) + 1
        result.organic_offset_count = len(result.blocks)
    else:
        result.organic_offset_count = first_organic_index

    return result
