"""
serp_fields.py
Field-name drift between provider payload shapes, isolated in one place.

Every nested shape (AI overview reference, AI overview element, local listing,
top-level block) spells the same concepts differently: url vs link vs website,
title vs name vs snippet, order vs position. normalize_entry() folds them into
one canonical record so extraction code never repeats fallback chains.
"""
import math
import re
from urllib.parse import urlparse

# Per shape: canonical field -> provider keys, first non-empty wins.
FIELD_FALLBACKS = {
    "reference": {
        "url": ("url", "link"),
        "title": ("title",),
        "text": ("text",),
        "source": ("source",),
    },
    "element": {
        "url": ("url", "link"),
        "title": ("title", "snippet"),
        "text": ("text", "title"),
        "source": (),
    },
    "listing": {
        "url": ("url", "website", "link"),
        "title": ("title", "name"),
        "text": ("description",),
        "source": (),
    },
    "block": {
        "url": ("url", "link"),
        "title": ("title",),
        "text": ("description", "text", "snippet"),
        "source": (),
    },
}

_HOST_FALLBACK_RE = re.compile(r"(?:https?://)?(?:www\.)?([^/]+)")


def clean_domain(domain):
    """Lowercases a host and strips a leading 'www.'. Non-strings become ''."""
    if not isinstance(domain, str):
        return ""
    domain = domain.strip().lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def extract_domain(url):
    """
    Resolves the host of a URL, without a leading 'www.'.
    Falls back to a permissive host-like match when the URL does not parse.
    Returns '' when nothing usable is found; callers treat '' as "no domain".
    """
    if not isinstance(url, str) or not url.strip():
        return ""
    url = url.strip()
    try:
        parsed = urlparse(url)
        if parsed.scheme and parsed.hostname:
            return clean_domain(parsed.hostname)
    except ValueError:
        pass

    match = _HOST_FALLBACK_RE.match(url)
    if not match:
        return ""
    return clean_domain(match.group(1))


def _first_text(raw, keys):
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def numeric_or_none(value):
    """
    Returns value as an int when it is a finite real number, truncating any
    fraction (2.7 -> 2). Bools, NaN, infinities and strings such as 'left'
    yield None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def normalize_entry(raw, shape):
    """
    Folds a raw provider dict of the given shape into
    {domain, url, title, text, order, source}.

    domain prefers an explicit upstream domain and otherwise resolves it from
    the url; order prefers a numeric 'order', then a numeric 'position'.
    """
    fallbacks = FIELD_FALLBACKS[shape]
    if not isinstance(raw, dict):
        raw = {}

    url = _first_text(raw, fallbacks["url"])
    domain = clean_domain(raw.get("domain")) or extract_domain(url)

    order = numeric_or_none(raw.get("order"))
    if order is None:
        order = numeric_or_none(raw.get("position"))

    return {
        "domain": domain,
        "url": url,
        "title": _first_text(raw, fallbacks["title"]),
        "text": _first_text(raw, fallbacks["text"]),
        "order": order,
        "source": _first_text(raw, fallbacks["source"]),
    }
