"""
Parsers
Turns raw Gemini text into Python objects for priority_service
"""

import json
from typing import Any, Dict, List

NO_JSON_OBJECT = "Could not parse a JSON object from model output."


def _strip_code_fences(text: str) -> str:
    t = (text or "").strip()
    if t.startswith("```"):
        t = t.strip("`").strip()
        # drop the language tag line (```json)
        if "\n" in t:
            t = t.split("\n", 1)[1].strip()
        if t.endswith("```"):
            t = t[:-3].strip()
    return t


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first JSON object in a model reply.
    Accepts fenced replies and replies with prose around the object;
    raises ValueError when there is no object to be found.
    """
    t = _strip_code_fences(text)

    try:
        data = json.loads(t)
    except ValueError:
        data = None
    if isinstance(data, dict):
        return data

    start, end = t.find("{"), t.rfind("}")
    if start == -1 or end <= start:
        raise ValueError(NO_JSON_OBJECT)
    try:
        data = json.loads(t[start:end + 1])
    except ValueError as e:
        raise ValueError(NO_JSON_OBJECT) from e
    if not isinstance(data, dict):
        raise ValueError(NO_JSON_OBJECT)
    return data


def clean_string_list(value: Any, limit: int = 5) -> List[str]:
    """Non-blank stripped strings from a model-provided list, at most limit of them"""
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        if len(out) >= limit:
            break
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out
