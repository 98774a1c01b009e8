"""
layout_models.py
Records produced by the layout parser and consumed by scoring, alerting and storage.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LayoutBlockEntry:
    """One distinct block type in first-appearance order.

    result_count stays at 1 even when the type recurs; repeat occurrences
    are not counted.
    """

    block_type: str
    position: int  # 1-based block index of the first occurrence
    result_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ParsedSubItem:
    position: int
    title: str
    url: str
    domain: str


@dataclass
class ParsedBlock:
    block_type: str
    block_index: int  # 0-based, dense across accepted items
    rank_absolute: int = 0
    title: Optional[str] = None
    url: Optional[str] = None
    domain: Optional[str] = None
    description: Optional[str] = None
    items: Optional[List[ParsedSubItem]] = None
    ai_overview_text: Optional[str] = None
    featured_snippet_text: Optional[str] = None


@dataclass
class CompetitorPresence:
    domain: str
    block_type: str
    position: Optional[int]
    url: str
    title: str
    is_in_ai_overview: bool = False
    is_in_featured_snippet: bool = False


@dataclass
class AiOverviewReference:
    domain: str
    url: str
    page_title: str
    source_name: str
    cited_text: Optional[str]
    reference_position: int
    is_element_level: bool
    ai_generated_context: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ParsedSerpResult:
    keyword: str
    layout_stack: List[LayoutBlockEntry] = field(default_factory=list)
    organic_start_position: int = 1
    organic_offset_count: int = 0
    has_ai_overview: bool = False
    has_featured_snippet: bool = False
    has_local_pack: bool = False
    has_people_also_ask: bool = False
    has_ads: bool = False
    has_video_carousel: bool = False
    blocks: List[ParsedBlock] = field(default_factory=list)
    competitor_presences: List[CompetitorPresence] = field(default_factory=list)
    ai_overview_references: List[AiOverviewReference] = field(default_factory=list)

    def block_types(self):
        return {entry.block_type for entry in self.layout_stack}


@dataclass
class LayoutSnapshot:
    """A persisted layout observation for one keyword at one capture time."""

    keyword_id: int
    layout_stack: List[LayoutBlockEntry] = field(default_factory=list)
    organic_start_position: int = 1
    organic_offset_count: int = 0
    has_ai_overview: bool = False
    has_featured_snippet: bool = False
    has_local_pack: bool = False
    has_people_also_ask: bool = False
    has_ads: bool = False
    has_video_carousel: bool = False
    stability_score: int = 100
    project_id: Optional[str] = None
    id: Optional[int] = None
    captured_at: Optional[str] = None

    def block_types(self):
        return {entry.block_type for entry in self.layout_stack}

    @classmethod
    def from_row(cls, row):
        """Builds a snapshot from a storage row (sqlite3.Row or dict)."""
        row = dict(row)
        stack_raw = row.get("layout_stack") or "[]"
        if isinstance(stack_raw, str):
            stack_raw = json.loads(stack_raw)
        layout_stack = [
            LayoutBlockEntry(
                block_type=entry.get("block_type"),
                position=entry.get("position", 0),
                result_count=entry.get("result_count", 1),
            )
            for entry in stack_raw if isinstance(entry, dict)
        ]
        return cls(
            id=row.get("id"),
            keyword_id=row.get("keyword_id"),
            project_id=row.get("project_id"),
            layout_stack=layout_stack,
            organic_start_position=row.get("organic_start_position") or 1,
            organic_offset_count=row.get("organic_offset_count") or 0,
            has_ai_overview=bool(row.get("has_ai_overview")),
            has_featured_snippet=bool(row.get("has_featured_snippet")),
            has_local_pack=bool(row.get("has_local_pack")),
            has_people_also_ask=bool(row.get("has_people_also_ask")),
            has_ads=bool(row.get("has_ads")),
            has_video_carousel=bool(row.get("has_video_carousel")),
            stability_score=row.get("stability_score") if row.get("stability_score") is not None else 100,
            captured_at=row.get("captured_at"),
        )


ALERT_TYPES = frozenset([
    "intent_shift", "lost_serp_feature", "organic_pushed_down",
    "competitor_gained_feature", "competitor_in_ai_overview", "volatility_spike",
])
SEVERITIES = frozenset(["low", "medium", "high"])


@dataclass
class IntentAlert:
    alert_type: str
    severity: str
    title: str
    description: str
    previous_state: Dict[str, Any]
    new_state: Dict[str, Any]
    keyword_id: Optional[int] = None
    project_id: Optional[str] = None
    snapshot_id: Optional[int] = None

    def __post_init__(self):
        if self.alert_type not in ALERT_TYPES:
            raise ValueError(f"Unknown alert type: {self.alert_type}")
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {self.severity}")
