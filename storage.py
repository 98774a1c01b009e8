"""
storage.py
Manages the SQLite database for SERP layout snapshots, layout items,
competitor presences, AI Overview citations and intent alerts.
"""
import json
import sqlite3
from dataclasses import replace
from datetime import datetime

from layout_models import LayoutSnapshot


class LayoutStorage:
    def __init__(self, db_path="serp_layout.db"):
        self.db_path = db_path
        self._init_db()

    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        c = conn.cursor()

        # 1. Layout Snapshots (one per keyword per capture)
        c.execute('''CREATE TABLE IF NOT EXISTS layout_snapshots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT,
            keyword_id INTEGER NOT NULL,
            captured_at TEXT NOT NULL,
            layout_stack TEXT NOT NULL, -- JSON list of {block_type, position, result_count}
            organic_start_position INTEGER,
            organic_offset_count INTEGER,
            has_ai_overview INTEGER DEFAULT 0,
            has_featured_snippet INTEGER DEFAULT 0,
            has_local_pack INTEGER DEFAULT 0,
            has_people_also_ask INTEGER DEFAULT 0,
            has_ads INTEGER DEFAULT 0,
            has_video_carousel INTEGER DEFAULT 0,
            stability_score INTEGER
        )''')
        c.execute('''CREATE INDEX IF NOT EXISTS layout_snapshots_keyword_idx
                     ON layout_snapshots (keyword_id, captured_at)''')

        # 2. Layout Items (one per parsed block)
        c.execute('''CREATE TABLE IF NOT EXISTS layout_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            snapshot_id INTEGER NOT NULL,
            block_index INTEGER,
            block_type TEXT,
            position_start INTEGER,
            position_end INTEGER,
            result_count INTEGER,
            competitor_domains TEXT, -- JSON list
            feature_metadata TEXT, -- JSON {text, title} or NULL
            FOREIGN KEY(snapshot_id) REFERENCES layout_snapshots(id)
        )''')

        # 3. Competitor Presences
        c.execute('''CREATE TABLE IF NOT EXISTS competitor_presences (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            snapshot_id INTEGER NOT NULL,
            competitor_domain TEXT,
            block_type TEXT,
            position INTEGER,
            url TEXT,
            FOREIGN KEY(snapshot_id) REFERENCES layout_snapshots(id)
        )''')

        # 4. AI Overview Citations
        c.execute('''CREATE TABLE IF NOT EXISTS ai_overview_citations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            snapshot_id INTEGER NOT NULL,
            keyword_id INTEGER,
            project_id TEXT,
            domain TEXT,
            url TEXT,
            page_title TEXT,
            source_name TEXT,
            cited_text TEXT,
            ai_generated_context TEXT,
            reference_position INTEGER,
            is_element_level INTEGER,
            content_type TEXT,
            FOREIGN KEY(snapshot_id) REFERENCES layout_snapshots(id)
        )''')

        # 5. Intent Alerts
        c.execute('''CREATE TABLE IF NOT EXISTS intent_alerts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT,
            keyword_id INTEGER,
            snapshot_id INTEGER,
            alert_type TEXT NOT NULL,
            severity TEXT NOT NULL,
            title TEXT,
            description TEXT,
            previous_state TEXT, -- JSON
            new_state TEXT, -- JSON
            is_resolved INTEGER DEFAULT 0,
            resolved_at TEXT,
            created_at TEXT
        )''')

        conn.commit()
        conn.close()

    def create_layout_snapshot(self, snapshot):
        """Inserts a LayoutSnapshot and returns a copy carrying its id and capture time."""
        captured_at = snapshot.captured_at or datetime.now().isoformat()
        stack_json = json.dumps([entry.to_dict() for entry in snapshot.layout_stack])
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute('''INSERT INTO layout_snapshots
                            (project_id, keyword_id, captured_at, layout_stack, organic_start_position,
                             organic_offset_count, has_ai_overview, has_featured_snippet, has_local_pack,
                             has_people_also_ask, has_ads, has_video_carousel, stability_score)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''',
                               (snapshot.project_id, snapshot.keyword_id, captured_at, stack_json,
                                snapshot.organic_start_position, snapshot.organic_offset_count,
                                int(snapshot.has_ai_overview), int(snapshot.has_featured_snippet),
                                int(snapshot.has_local_pack), int(snapshot.has_people_also_ask),
                                int(snapshot.has_ads), int(snapshot.has_video_carousel),
                                snapshot.stability_score))
            snapshot_id = cur.lastrowid
        return replace(snapshot, id=snapshot_id, captured_at=captured_at)

    def create_layout_items(self, items):
        rows = [
            (item["snapshot_id"], item["block_index"], item["block_type"], item["position_start"],
             item["position_end"], item["result_count"], json.dumps(item["competitor_domains"]),
             json.dumps(item["feature_metadata"]) if item.get("feature_metadata") else None)
            for item in items
        ]
        with sqlite3.connect(self.db_path) as conn:
            conn.executemany('''INSERT INTO layout_items
                            (snapshot_id, block_index, block_type, position_start, position_end,
                             result_count, competitor_domains, feature_metadata)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?)''', rows)

    def create_competitor_presence_batch(self, presences):
        rows = [
            (p["snapshot_id"], p["competitor_domain"], p["block_type"], p.get("position"), p.get("url"))
            for p in presences
        ]
        with sqlite3.connect(self.db_path) as conn:
            conn.executemany('''INSERT INTO competitor_presences
                            (snapshot_id, competitor_domain, block_type, position, url)
                            VALUES (?, ?, ?, ?, ?)''', rows)

    def create_ai_overview_citation_batch(self, citations):
        rows = [
            (c["snapshot_id"], c.get("keyword_id"), c.get("project_id"), c["domain"], c["url"],
             c.get("page_title"), c.get("source_name"), c.get("cited_text"),
             c.get("ai_generated_context"), c.get("reference_position"),
             int(bool(c.get("is_element_level"))), c.get("content_type"))
            for c in citations
        ]
        with sqlite3.connect(self.db_path) as conn:
            conn.executemany('''INSERT INTO ai_overview_citations
                            (snapshot_id, keyword_id, project_id, domain, url, page_title, source_name,
                             cited_text, ai_generated_context, reference_position, is_element_level,
                             content_type)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''', rows)

    def create_intent_alert(self, alert):
        created_at = datetime.now().isoformat()
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute('''INSERT INTO intent_alerts
                            (project_id, keyword_id, snapshot_id, alert_type, severity, title,
                             description, previous_state, new_state, is_resolved, created_at)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)''',
                               (alert.project_id, alert.keyword_id, alert.snapshot_id, alert.alert_type,
                                alert.severity, alert.title, alert.description,
                                json.dumps(alert.previous_state), json.dumps(alert.new_state),
                                created_at))
            return cur.lastrowid

    def get_latest_layout_snapshot(self, keyword_id):
        """Most recent snapshot for the keyword, or None on a first observation."""
        conn = self._connect()
        try:
            row = conn.execute('''SELECT * FROM layout_snapshots WHERE keyword_id = ?
                                  ORDER BY captured_at DESC, id DESC LIMIT 1''',
                               (keyword_id,)).fetchone()
        finally:
            conn.close()
        return LayoutSnapshot.from_row(row) if row else None

    def get_intent_alerts(self, keyword_id=None, unresolved_only=False):
        query = "SELECT * FROM intent_alerts WHERE 1 = 1"
        params = []
        if keyword_id is not None:
            query += " AND keyword_id = ?"
            params.append(keyword_id)
        if unresolved_only:
            query += " AND is_resolved = 0"
        query += " ORDER BY created_at DESC, id DESC"

        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        alerts = []
        for row in rows:
            alert = dict(row)
            alert["previous_state"] = json.loads(alert["previous_state"] or "{}")
            alert["new_state"] = json.loads(alert["new_state"] or "{}")
            alert["is_resolved"] = bool(alert["is_resolved"])
            alerts.append(alert)
        return alerts

    def resolve_intent_alert(self, alert_id):
        """Marks an alert resolved. Returns False when no such alert exists."""
        resolved_at = datetime.now().isoformat()
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute('''UPDATE intent_alerts SET is_resolved = 1, resolved_at = ?
                                  WHERE id = ?''', (resolved_at, alert_id))
            return cur.rowcount > 0
