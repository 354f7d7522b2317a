"""
Turn the generation model's free text into a ParsedPlan.

The text is untrusted: it may be wrapped in a Markdown code fence, may not be
JSON at all, or may be JSON of the wrong shape. Anything short of a complete
plan fails with MalformedPlan; there are no partial plans.
"""

import json
import re

import structlog
from pydantic import ValidationError

from tripplanner.core.errors import MalformedPlan
from tripplanner.core.planning.models import ParsedPlan

logger = structlog.get_logger(__name__)

# Opening fence with optional language tag, then everything up to the first closing fence
_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)


def strip_code_fence(raw_text: str) -> str:
    """Return the interior of a leading ```/```json fence, or the trimmed text."""
    text = raw_text.strip()
    if not text.startswith("```"):
        return text
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    # Unterminated fence: drop the opening marker line only
    return re.sub(r"^```[\w+-]*", "", text, count=1).strip()


def _describe(err: ValidationError) -> str:
    first = err.errors()[0]
    where = ".".join(str(p) for p in first.get("loc", ()))
    return f"{where}: {first.get('msg')}" if where else str(first.get("msg"))


# Location data is attached by geocoding only, never taken from the model
_ENRICHED_FIELDS = ("location", "osm_url")


def _strip_enrichment(day: dict) -> dict:
    activities = [
        {k: v for k, v in a.items() if k not in _ENRICHED_FIELDS} if isinstance(a, dict) else a
        for a in day["activities"]
    ]
    return {**day, "activities": activities}


def parse_plan(raw_text: str, excerpt_length: int = 500) -> ParsedPlan:
    """Decode raw model output into a ParsedPlan or raise MalformedPlan."""
    if raw_text is None:
        raw_text = ""
    body = strip_code_fence(raw_text)

    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning("plan_parse_failed", reason="invalid_json", error=str(e), raw_text=raw_text)
        raise MalformedPlan(
            "AI response is not valid JSON. Please try again or refine your request.",
            raw_text=raw_text,
            excerpt_length=excerpt_length,
        )

    if not isinstance(document, dict) or "plan" not in document:
        logger.warning("plan_parse_failed", reason="missing_plan_key", raw_text=raw_text)
        raise MalformedPlan(
            "AI response is missing the 'plan' key.",
            raw_text=raw_text,
            excerpt_length=excerpt_length,
        )

    plan = document["plan"]
    if not isinstance(plan, list) or not plan:
        logger.warning("plan_parse_failed", reason="empty_plan", raw_text=raw_text)
        raise MalformedPlan(
            "AI response 'plan' must be a non-empty list of days.",
            raw_text=raw_text,
            excerpt_length=excerpt_length,
        )

    for index, day in enumerate(plan):
        if not isinstance(day, dict) or not isinstance(day.get("activities"), list):
            logger.warning("plan_parse_failed", reason="missing_activities", day_index=index, raw_text=raw_text)
            raise MalformedPlan(
                f"Day {index + 1} of the AI response has no 'activities' list.",
                raw_text=raw_text,
                excerpt_length=excerpt_length,
            )

    try:
        parsed = ParsedPlan.model_validate({"plan": [_strip_enrichment(day) for day in plan]})
    except ValidationError as e:
        logger.warning("plan_parse_failed", reason="invalid_structure", error=_describe(e), raw_text=raw_text)
        raise MalformedPlan(
            f"AI response has an invalid plan structure ({_describe(e)}).",
            raw_text=raw_text,
            excerpt_length=excerpt_length,
        )

    logger.info("plan_parsed", days=len(parsed.plan),
                activities=sum(len(d.activities) for d in parsed.plan))
    return parsed
