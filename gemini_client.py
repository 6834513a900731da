"""
Gemini client
Single generateContent call used for task priority suggestions
"""

import json
import urllib.error
import urllib.parse
import urllib.request

from loguru import logger

from config import GOOGLE_API_KEY, GEMINI_URL, GEMINI_MODEL, GEMINI_TIMEOUT_SECONDS


def call_gemini(prompt: str, temperature: float = 0.2, timeout_s: int = GEMINI_TIMEOUT_SECONDS) -> str:
    """Send one prompt and return the first candidate's text; RuntimeError on any failure"""
    if not GOOGLE_API_KEY:
        raise RuntimeError("Missing GOOGLE_API_KEY in .env")

    body = json.dumps({
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature},
    }).encode("utf-8")
    req = urllib.request.Request(
        f"{GEMINI_URL}?key={urllib.parse.quote(GOOGLE_API_KEY)}",
        data=body,
        headers={"Content-Type": "application/json"},
    )

    logger.debug(f"🤖 Asking {GEMINI_MODEL} ({len(prompt)} chars)")
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            reply = json.loads(resp.read().decode("utf-8"))
    except (urllib.error.URLError, TimeoutError, ValueError) as e:
        raise RuntimeError(f"Gemini API call failed: {e}") from e

    try:
        return reply["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise RuntimeError(f"Unexpected Gemini response format: {reply}") from e
