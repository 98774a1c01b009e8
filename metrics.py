"""
metrics.py
Calculates layout metrics (Stability, Feature Prevalence, Competitor Visibility)
from the SQLite snapshot history.
"""
import json
import logging
import os
import sqlite3

import pandas as pd

DB_PATH = "serp_layout.db"

LATEST_SNAPSHOTS_QUERY = """
SELECT s.*
FROM layout_snapshots s
WHERE s.id = (
    SELECT s2.id FROM layout_snapshots s2
    WHERE s2.keyword_id = s.keyword_id
    ORDER BY s2.captured_at DESC, s2.id DESC
    LIMIT 1
)
"""

EMPTY_SUMMARY = {
    "total_keywords": 0,
    "avg_stability_score": 0.0,
    "keywords_with_ai_overview": 0,
    "keywords_with_featured_snippet": 0,
    "keywords_with_local_pack": 0,
    "avg_organic_position": 0.0,
    "layout_distribution": {},
}


def _stack_types(stack_json):
    try:
        stack = json.loads(stack_json or "[]")
    except (TypeError, ValueError):
        return []
    return sorted({entry.get("block_type") for entry in stack
                   if isinstance(entry, dict) and entry.get("block_type")})


def get_stability_summary(db_path=DB_PATH):
    """
    Summarizes the latest snapshot of every keyword: average stability,
    feature prevalence and how many keywords show each block type.
    """
    if not os.path.exists(db_path):
        return dict(EMPTY_SUMMARY)

    try:
        conn = sqlite3.connect(db_path)
        df = pd.read_sql(LATEST_SNAPSHOTS_QUERY, conn)
        conn.close()

        if df.empty:
            return dict(EMPTY_SUMMARY)

        # Ensure numeric types (older rows may hold NULLs)
        df['stability_score'] = pd.to_numeric(df['stability_score'], errors='coerce')
        df['organic_start_position'] = pd.to_numeric(df['organic_start_position'], errors='coerce')

        distribution = df['layout_stack'].apply(_stack_types).explode().dropna().value_counts()

        return {
            "total_keywords": int(len(df)),
            "avg_stability_score": round(float(df['stability_score'].mean()), 1),
            "keywords_with_ai_overview": int(df['has_ai_overview'].astype(bool).sum()),
            "keywords_with_featured_snippet": int(df['has_featured_snippet'].astype(bool).sum()),
            "keywords_with_local_pack": int(df['has_local_pack'].astype(bool).sum()),
            "avg_organic_position": round(float(df['organic_start_position'].mean()), 1),
            "layout_distribution": {k: int(v) for k, v in distribution.items()},
        }

    except Exception as e:
        logging.error(f"Error calculating stability summary: {e}")
        return dict(EMPTY_SUMMARY)


def get_competitor_visibility(db_path=DB_PATH, limit=20):
    """
    Counts competitor sightings per SERP feature across the latest snapshot of
    every keyword. Sorted by total mentions, most visible first.
    """
    if not os.path.exists(db_path):
        return []

    try:
        conn = sqlite3.connect(db_path)
        query = f"""
        SELECT
            p.competitor_domain,
            p.block_type
        FROM competitor_presences p
        JOIN ({LATEST_SNAPSHOTS_QUERY}) latest ON p.snapshot_id = latest.id
        WHERE p.competitor_domain IS NOT NULL AND p.competitor_domain != ''
        """
        df = pd.read_sql(query, conn)
        conn.close()

        if df.empty:
            return []

        counts = pd.crosstab(df['competitor_domain'], df['block_type'])
        for block_type in ("ai_overview", "featured_snippet", "local_pack", "organic"):
            if block_type not in counts.columns:
                counts[block_type] = 0

        visibility = pd.DataFrame({
            "competitor_domain": counts.index,
            "total_mentions": counts.sum(axis=1).values,
            "ai_overview_mentions": counts['ai_overview'].values,
            "featured_snippet_mentions": counts['featured_snippet'].values,
            "local_pack_mentions": counts['local_pack'].values,
            "organic_mentions": counts['organic'].values,
        })
        # Stable order for equal totals
        visibility = visibility.sort_values(
            ['total_mentions', 'competitor_domain'], ascending=[False, True]).head(limit)

        return [
            {k: (int(v) if k != "competitor_domain" else v) for k, v in row.items()}
            for row in visibility.to_dict('records')
        ]

    except Exception as e:
        logging.error(f"Error calculating competitor visibility: {e}")
        return []


def get_stability_history(keyword_id, db_path=DB_PATH):
    """
    Returns the chronological stability history for one keyword as a list of
    {captured_at, stability_score, organic_start_position}.
    """
    if not os.path.exists(db_path):
        return []

    try:
        conn = sqlite3.connect(db_path)
        query = """
        SELECT
            captured_at,
            stability_score,
            organic_start_position
        FROM layout_snapshots
        WHERE keyword_id = ?
        ORDER BY captured_at ASC, id ASC
        """
        df = pd.read_sql(query, conn, params=(keyword_id,))
        conn.close()
        return df.to_dict('records')

    except Exception as e:
        logging.error(f"Error getting stability history: {e}")
        return []
