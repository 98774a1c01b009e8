"""
block_types.py
Maps provider SERP item types onto the closed set of canonical layout block types.
"""

CANONICAL_BLOCK_TYPES = frozenset([
    "ads_top", "ads_bottom", "organic", "featured_snippet", "people_also_ask",
    "local_pack", "knowledge_panel", "video_carousel", "image_pack", "shopping",
    "popular_products", "top_stories", "related_searches", "ai_overview",
    "discussions", "twitter_carousel",
])

# None = ignored (no layout entry, no block, no presence)
TYPE_TO_BLOCK_MAP = {
    "paid": "ads_top",
    "paid_top": "ads_top",
    "paid_bottom": "ads_bottom",
    "organic": "organic",
    "featured_snippet": "featured_snippet",
    "answer_box": "featured_snippet",
    "people_also_ask": "people_also_ask",
    "local_pack": "local_pack",
    "knowledge_panel": "knowledge_panel",
    "knowledge_graph": "knowledge_panel",
    "video": "video_carousel",
    "video_carousel": "video_carousel",
    "images": "image_pack",
    "image_pack": "image_pack",
    "shopping": "shopping",
    "shopping_element": "shopping",
    "popular_products": "popular_products",
    "news": "top_stories",
    "top_stories": "top_stories",
    "related_searches": "related_searches",
    "ai_overview": "ai_overview",
    "discussions_and_forums": "discussions",
    "discussions": "discussions",
    "twitter": "twitter_carousel",
    "twitter_carousel": "twitter_carousel",
    "google_flights": None,
    "google_reviews": None,
    "google_hotels": None,
    "jobs": None,
    "events": None,
    "recipes": None,
    "scholarly_articles": None,
}


def normalize_block_type(provider_type):
    """
    Returns the canonical block type for a provider type string, or None when
    the type is unknown or explicitly ignored. Never raises.
    """
    if not isinstance(provider_type, str):
        return None
    return TYPE_TO_BLOCK_MAP.get(provider_type.strip().lower())
