"""
layout_engine.py
Per-keyword SERP layout pipeline: parse -> score against the last snapshot ->
detect intent changes -> persist. process_batch() runs it keyword by keyword.
"""
import argparse
import json
import logging
import os

import yaml
from dotenv import load_dotenv

from classifiers import SourceNamer
from intent_alerts import detect_intent_changes
from layout_models import LayoutSnapshot
from layout_parser import parse_serp_items
from stability import calculate_stability_score
from storage import LayoutStorage

# --- CONFIGURATION ---
load_dotenv()

CONFIG = {}
if os.path.exists("config.yml"):
    with open("config.yml", "r") as f:
        CONFIG = yaml.safe_load(f) or {}

DB_PATH = os.getenv("SERP_LAYOUT_DB") or CONFIG.get("files", {}).get("database", "serp_layout.db")
SOURCE_OVERRIDES_FILE = CONFIG.get("files", {}).get("source_overrides", "source_overrides.yml")
LOG_LEVEL = os.getenv("SERP_LAYOUT_LOG_LEVEL") or CONFIG.get("logging", {}).get("level", "INFO")
LOG_FILE = CONFIG.get("logging", {}).get("log_file", "logs/serp_layout.log")


def setup_logging(log_file=LOG_FILE, level=LOG_LEVEL):
    """Sets up file + console logging for the layout pipeline."""
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def get_storage(db_path=None):
    """Opens the configured layout database (created on first use)."""
    return LayoutStorage(db_path or DB_PATH)


def build_layout_items(parsed, snapshot_id):
    """One storage row per parsed block."""
    rows = []
    for block in parsed.blocks:
        feature_metadata = None
        text = block.ai_overview_text or block.featured_snippet_text or block.description
        if text:
            feature_metadata = {"text": text, "title": block.title or None}

        if block.items is not None:
            competitor_domains = [sub.domain for sub in block.items if sub.domain]
        else:
            competitor_domains = [block.domain] if block.domain else []

        rows.append({
            "snapshot_id": snapshot_id,
            "block_index": block.block_index,
            "block_type": block.block_type,
            "position_start": block.rank_absolute,
            "position_end": block.rank_absolute,
            "result_count": len(block.items or []) or 1,
            "competitor_domains": competitor_domains,
            "feature_metadata": feature_metadata,
        })
    return rows


def build_presence_rows(parsed, snapshot_id):
    return [{
        "snapshot_id": snapshot_id,
        "competitor_domain": p.domain,
        "block_type": p.block_type,
        "position": p.position,
        "url": p.url,
    } for p in parsed.competitor_presences]


def build_citation_rows(parsed, snapshot_id, keyword_id, project_id=None):
    return [{
        "snapshot_id": snapshot_id,
        "keyword_id": keyword_id,
        "project_id": project_id,
        "domain": ref.domain,
        "url": ref.url,
        "page_title": ref.page_title,
        "source_name": ref.source_name,
        "cited_text": ref.cited_text,
        "ai_generated_context": ref.ai_generated_context,
        "reference_position": ref.reference_position,
        "is_element_level": ref.is_element_level,
        "content_type": ref.content_type,
    } for ref in parsed.ai_overview_references]


def process_serp_data(storage, keyword_id, keyword, serp_items, project_id=None, source_namer=None):
    """
    Runs the full pipeline for one keyword and persists the results.

    The previous snapshot is read before the new one is written, so calls for
    the same keyword must not overlap. Exceptions propagate to the caller.
    Each gateway write commits on its own: a failure after the snapshot insert
    leaves that snapshot stored as the keyword's latest, without its items or alerts.
    Returns {"snapshot": LayoutSnapshot, "alerts": [IntentAlert, ...], "parsed": ParsedSerpResult}.
    """
    parsed = parse_serp_items(serp_items, keyword, source_namer=source_namer)

    previous = storage.get_latest_layout_snapshot(keyword_id)
    stability_score = calculate_stability_score(parsed, previous)

    snapshot = storage.create_layout_snapshot(LayoutSnapshot(
        keyword_id=keyword_id,
        project_id=project_id,
        layout_stack=parsed.layout_stack,
        organic_start_position=parsed.organic_start_position,
        organic_offset_count=parsed.organic_offset_count,
        has_ai_overview=parsed.has_ai_overview,
        has_featured_snippet=parsed.has_featured_snippet,
        has_local_pack=parsed.has_local_pack,
        has_people_also_ask=parsed.has_people_also_ask,
        has_ads=parsed.has_ads,
        has_video_carousel=parsed.has_video_carousel,
        stability_score=stability_score,
    ))

    layout_items = build_layout_items(parsed, snapshot.id)
    if layout_items:
        storage.create_layout_items(layout_items)

    presence_rows = build_presence_rows(parsed, snapshot.id)
    if presence_rows:
        storage.create_competitor_presence_batch(presence_rows)

    citation_rows = build_citation_rows(parsed, snapshot.id, keyword_id, project_id)
    if citation_rows:
        storage.create_ai_overview_citation_batch(citation_rows)

    alerts = detect_intent_changes(keyword, parsed, previous,
                                   keyword_id=keyword_id, project_id=project_id)
    for alert in alerts:
        alert.snapshot_id = snapshot.id
        storage.create_intent_alert(alert)

    logging.info(
        f"[{keyword}] {len(parsed.blocks)} blocks, organic starts at "
        f"{parsed.organic_start_position}, stability {stability_score}, {len(alerts)} alerts")

    return {"snapshot": snapshot, "alerts": alerts, "parsed": parsed}


def process_batch(storage, keyword_results, project_id=None, on_progress=None, source_namer=None):
    """
    Processes (keyword_id, keyword, serp_items) tuples strictly one after another.
    A failing keyword is logged and skipped; the batch carries on. This covers
    malformed tuples and errors raised by on_progress as well.
    on_progress(processed, total) is called after each successful keyword.
    Returns {"processed": int, "alerts_generated": int}.
    """
    if source_namer is None:
        source_namer = SourceNamer(override_file=SOURCE_OVERRIDES_FILE)

    total = len(keyword_results)
    processed = 0
    alerts_generated = 0
    logging.info(f"Processing SERP layouts for {total} keywords...")

    for index, entry in enumerate(keyword_results):
        keyword = f"#{index + 1}"
        try:
            keyword_id, keyword, serp_items = entry
            result = process_serp_data(storage, keyword_id, keyword, serp_items,
                                       project_id=project_id, source_namer=source_namer)
            alerts_generated += len(result["alerts"])
            processed += 1
            if on_progress:
                on_progress(processed, total)
        except Exception as e:
            logging.error(f"Error processing SERP layout for '{keyword}': {e}")

    logging.info(f"Processed {processed}/{total} layouts, generated {alerts_generated} alerts")
    return {"processed": processed, "alerts_generated": alerts_generated}


def load_keyword_results(input_file):
    """
    Reads a JSON list of {"keyword_id", "keyword", "items"} objects into
    (keyword_id, keyword, serp_items) tuples.
    """
    with open(input_file, "r") as f:
        records = json.load(f)
    return [(r.get("keyword_id"), r.get("keyword"), r.get("items") or []) for r in records]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Parse and score SERP layouts from a JSON results file.")
    parser.add_argument("input_file", help="JSON list of {keyword_id, keyword, items}")
    parser.add_argument("--db", default=None, help=f"SQLite database (default: {DB_PATH})")
    parser.add_argument("--project", default=None, help="Project id stored with every row")
    args = parser.parse_args(argv)

    setup_logging()

    if not os.path.exists(args.input_file):
        logging.error(f"{args.input_file} not found.")
        return None

    try:
        keyword_results = load_keyword_results(args.input_file)
    except (OSError, ValueError, AttributeError) as e:
        logging.error(f"Error reading {args.input_file}: {e}")
        return None

    storage = get_storage(args.db)
    return process_batch(storage, keyword_results, project_id=args.project)


if __name__ == "__main__":
    main()
