"""
Priority Service
Suggests a task priority with Gemini, falling back to keyword matching
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from loguru import logger

import gemini_client
from config import GOOGLE_API_KEY
from models import PRIORITIES, DEFAULT_PRIORITY
from parsers import parse_json_object, clean_string_list
from prompts import PROMPT_TASK_ANALYSIS

HIGH_KEYWORDS = {
    "urgent", "asap", "deadline", "critical", "immediately", "today",
    "exam", "important", "overdue", "emergency",
}
LOW_KEYWORDS = {
    "someday", "maybe", "optional", "eventually", "whenever", "later", "idea",
}
DUE_SOON = timedelta(days=2)

_WORD_RE = re.compile(r"[a-z]+")


def _parse_due_date(due_date: Optional[str]) -> Optional[datetime]:
    if not due_date:
        return None
    try:
        parsed = datetime.fromisoformat(str(due_date).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def suggest_priority_by_keywords(task: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Heuristic used whenever the model is unavailable"""
    text = f"{task.get('content') or ''} {task.get('description') or ''}".lower()
    words = set(_WORD_RE.findall(text))
    now = now or datetime.now(timezone.utc)

    high_hits = sorted(words & HIGH_KEYWORDS)
    low_hits = sorted(words & LOW_KEYWORDS)
    due = _parse_due_date(task.get("dueDate"))

    if high_hits:
        priority = "high"
        reasoning = f"Mentions urgency ({', '.join(high_hits)})."
    elif due is not None and due - now <= DUE_SOON:
        priority = "high"
        reasoning = "Due within two days."
    elif low_hits:
        priority = "low"
        reasoning = f"Reads as optional ({', '.join(low_hits)})."
    else:
        current = task.get("priority")
        priority = current if current in PRIORITIES else DEFAULT_PRIORITY
        reasoning = "No urgency signals found; keeping the current priority."

    return {
        "suggestedPriority": priority,
        "tips": [],
        "reasoning": reasoning,
        "motivation": "",
        "source": "keywords",
    }


def _build_prompt(task: Dict[str, Any]) -> str:
    return PROMPT_TASK_ANALYSIS.format(
        content=task.get("content") or "",
        description=task.get("description") or "",
        due_date=task.get("dueDate") or "No due date specified",
        priority=task.get("priority") or "Not set",
    )


def analyze_task(task: Dict[str, Any]) -> Dict[str, Any]:
    """
    Analyze a task and suggest a priority

    Returns dict with:
    - suggestedPriority: low / medium / high
    - tips: productivity tips (empty for the keyword fallback)
    - reasoning, motivation: short explanations
    - source: "gemini" or "keywords"
    """
    if not GOOGLE_API_KEY:
        return suggest_priority_by_keywords(task)

    try:
        response = gemini_client.call_gemini(_build_prompt(task), temperature=0.2)
        data = parse_json_object(response)
    except (RuntimeError, ValueError) as e:
        logger.warning(f"⚠️ AI task analysis failed, using keyword fallback: {e}")
        return suggest_priority_by_keywords(task)

    priority = str(data.get("suggestedPriority", "")).strip().lower()
    if priority not in PRIORITIES:
        logger.warning(f"⚠️ AI returned invalid priority {priority!r}, using keyword fallback")
        return suggest_priority_by_keywords(task)

    return {
        "suggestedPriority": priority,
        "tips": clean_string_list(data.get("tips"), limit=3),
        "reasoning": str(data.get("reasoning") or "").strip(),
        "motivation": str(data.get("motivation") or "").strip(),
        "source": "gemini",
    }
