"""
Prompt template loading and substitution.
"""

import re
from pathlib import Path
from typing import List, Union

import structlog

from tripplanner.core.errors import ConfigError
from tripplanner.core.planning.models import TripConstraints

logger = structlog.get_logger(__name__)

REQUIRED_PLACEHOLDERS = ("start_date", "end_date", "numDays", "interests", "budget", "travel_style")
OPTIONAL_PLACEHOLDERS = ("destination",)
RECOGNIZED_PLACEHOLDERS = REQUIRED_PLACEHOLDERS + OPTIONAL_PLACEHOLDERS

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def find_placeholders(text: str) -> List[str]:
    """Placeholder names present in ``text``, in order of first appearance."""
    names = []
    for name in _PLACEHOLDER_RE.findall(text):
        if name not in names:
            names.append(name)
    return names


class PromptBuilder:
    """Fills the trip prompt template. Same inputs always give the same text."""

    def __init__(self, template: str, destination: str = ""):
        self.template = template
        self.destination = destination

    @classmethod
    def from_file(cls, path: Union[str, Path], destination: str = "") -> "PromptBuilder":
        """Load and validate the template asset. Any problem is a ConfigError."""
        path = Path(path)
        try:
            template = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Prompt template could not be loaded from {path}: {e}") from e

        found = find_placeholders(template)
        missing = [p for p in REQUIRED_PLACEHOLDERS if p not in found]
        unknown = [p for p in found if p not in RECOGNIZED_PLACEHOLDERS]
        if missing:
            raise ConfigError(f"Prompt template {path} is missing placeholders: {', '.join(missing)}")
        if unknown:
            raise ConfigError(f"Prompt template {path} has unrecognized placeholders: {', '.join(unknown)}")

        logger.info("prompt_template_loaded", path=str(path), placeholders=found)
        return cls(template, destination=destination)

    def build(self, constraints: TripConstraints, day_count: int) -> str:
        values = {
            "start_date": constraints.start_date.isoformat(),
            "end_date": constraints.end_date.isoformat(),
            "numDays": str(day_count),
            "interests": ", ".join(constraints.interests),
            "budget": constraints.budget,
            "travel_style": constraints.travel_style,
            "destination": self.destination,
        }
        # Single pass so substituted values are never rescanned; unknown names stay verbatim
        return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), self.template)
