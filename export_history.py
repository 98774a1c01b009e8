"""
export_history.py
Exports the SERP layout tables to CSV files for external analysis.
"""
import argparse
import logging
import os
import sqlite3

import pandas as pd

DB_PATH = "serp_layout.db"
EXPORT_DIR = "exports"

TABLES = [
    "layout_snapshots",
    "layout_items",
    "competitor_presences",
    "ai_overview_citations",
    "intent_alerts",
]


def export_tables(db_path=DB_PATH, export_dir=EXPORT_DIR):
    """Writes every non-empty table to <export_dir>/<table>.csv. Returns {table: row_count}."""
    if not os.path.exists(db_path):
        logging.error(f"Database {db_path} not found.")
        return {}

    os.makedirs(export_dir, exist_ok=True)
    conn = sqlite3.connect(db_path)
    exported = {}

    logging.info(f"Exporting tables to '{export_dir}/'...")

    try:
        for table in TABLES:
            try:
                df = pd.read_sql(f"SELECT * FROM {table}", conn)
            except Exception as e:
                logging.error(f"  - {table}: Error exporting ({e})")
                continue

            if df.empty:
                logging.info(f"  - {table}: [Empty]")
                continue

            csv_path = os.path.join(export_dir, f"{table}.csv")
            df.to_csv(csv_path, index=False)
            exported[table] = len(df)
            logging.info(f"  - {table}: {len(df)} rows -> {csv_path}")
    finally:
        conn.close()

    return exported


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    parser = argparse.ArgumentParser(description="Export SERP layout history to CSV.")
    parser.add_argument("--db", default=DB_PATH)
    parser.add_argument("--out", default=EXPORT_DIR)
    args = parser.parse_args()
    export_tables(args.db, args.out)
