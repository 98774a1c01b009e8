"""
intent_alerts.py
Typed alerts for meaningful SERP layout changes between two observations.
"""
from layout_models import IntentAlert

ORGANIC_PUSH_DOWN_THRESHOLD = 3


def _feature_rule(flag, appeared, alert_type, severity, title, description):
    return {
        "flag": flag,
        "appeared": appeared,
        "alert_type": alert_type,
        "severity": severity,
        "title": title,
        "description": description,
    }


FEATURE_RULES = [
    _feature_rule(
        "has_ai_overview", True, "intent_shift", "high",
        'AI Overview Appeared for "{keyword}"',
        "This keyword now shows an AI Overview in search results. "
        "This may significantly reduce organic click-through rates."),
    _feature_rule(
        "has_ai_overview", False, "lost_serp_feature", "medium",
        'AI Overview Removed for "{keyword}"',
        "This keyword no longer shows an AI Overview. Organic visibility may improve."),
    _feature_rule(
        "has_featured_snippet", True, "intent_shift", "medium",
        'Featured Snippet Appeared for "{keyword}"',
        "This keyword now has a Featured Snippet. Consider optimizing for position zero."),
    _feature_rule(
        "has_local_pack", True, "intent_shift", "low",
        'Local Pack Appeared for "{keyword}"',
        "This keyword now shows Local Pack results. Consider local SEO optimization."),
]

ORGANIC_PUSHED_DOWN_TITLE = 'Organic Results Pushed Down for "{keyword}"'
ORGANIC_PUSHED_DOWN_DESCRIPTION = (
    "Organic results now start at position {current} (was {previous}). "
    "SERP features are consuming more space.")


def detect_intent_changes(keyword, current, previous, keyword_id=None, project_id=None):
    """
    Compares the current parse with the previous snapshot and returns every
    alert whose rule fires. Rules are independent; several can fire at once.
    A first observation (no previous snapshot) never alerts, and repeats across
    cycles are not suppressed here.
    """
    alerts = []
    if previous is None:
        return alerts

    for rule in FEATURE_RULES:
        flag = rule["flag"]
        was, now = bool(getattr(previous, flag)), bool(getattr(current, flag))
        if now == rule["appeared"] and was != now:
            alerts.append(IntentAlert(
                alert_type=rule["alert_type"],
                severity=rule["severity"],
                title=rule["title"].format(keyword=keyword),
                description=rule["description"],
                previous_state={flag: was},
                new_state={flag: now},
                keyword_id=keyword_id,
                project_id=project_id,
            ))

    previous_start = previous.organic_start_position or 1
    if current.organic_start_position - previous_start >= ORGANIC_PUSH_DOWN_THRESHOLD:
        alerts.append(IntentAlert(
            alert_type="organic_pushed_down",
            severity="high",
            title=ORGANIC_PUSHED_DOWN_TITLE.format(keyword=keyword),
            description=ORGANIC_PUSHED_DOWN_DESCRIPTION.format(
                current=current.organic_start_position, previous=previous_start),
            previous_state={"organic_start_position": previous_start},
            new_state={"organic_start_position": current.organic_start_position},
            keyword_id=keyword_id,
            project_id=project_id,
        ))

    return alerts
