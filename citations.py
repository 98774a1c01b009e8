"""
citations.py
Enriched AI Overview citations: source naming, cited text, content type and
reference order, for both element-level and overview-level references.
"""
from classifiers import CitationClassifier, SourceNamer
from layout_models import AiOverviewReference
from serp_fields import normalize_entry

AI_CONTEXT_MAX_CHARS = 500

_classifier = CitationClassifier()
_default_namer = SourceNamer(override_file=None)


def _as_list(value):
    return value if isinstance(value, list) else []


def _build_reference(ref, local_index, is_element_level, context, namer):
    entry = normalize_entry(ref, "reference")
    if not entry["domain"]:
        return None
    position = entry["order"] if entry["order"] is not None else local_index + 1
    return AiOverviewReference(
        domain=entry["domain"],
        url=entry["url"],
        page_title=entry["title"],
        source_name=namer.name(entry["domain"], entry["source"]),
        cited_text=entry["text"] or None,
        reference_position=position,
        is_element_level=is_element_level,
        ai_generated_context=context,
        content_type=_classifier.detect_content_type(
            entry["url"], entry["title"], entry["text"]),
    )


def extract_ai_overview_citations(raw_item, source_namer=None):
    """
    Builds the citation list for one ai_overview item.

    Element-level references come first and are never deduplicated among
    themselves: the same page can be cited in several contexts. Overview-level
    references are skipped when their URL was already recorded.
    """
    namer = source_namer or _default_namer
    citations = []
    if not isinstance(raw_item, dict):
        return citations

    for element in _as_list(raw_item.get("items")):
        if not isinstance(element, dict):
            continue
        context = normalize_entry(element, "element")["text"][:AI_CONTEXT_MAX_CHARS] or None
        for idx, ref in enumerate(_as_list(element.get("references"))):
            citation = _build_reference(ref, idx, True, context, namer)
            if citation:
                citations.append(citation)

    seen_urls = {c.url for c in citations}
    for idx, ref in enumerate(_as_list(raw_item.get("references"))):
        citation = _build_reference(ref, idx, False, None, namer)
        if not citation or citation.url in seen_urls:
            continue
        seen_urls.add(citation.url)
        citations.append(citation)

    return citations
