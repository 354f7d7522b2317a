"""
The itinerary planning pipeline:

    constraints -> prompt -> generation -> parse -> enrich -> GeneratedItinerary

Steps up to parsing fail fast and produce no itinerary; enrichment problems
are isolated per activity.
"""

import asyncio
import threading
import time
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from tripplanner.core.errors import InvalidInput, PlanningTimeout, UpstreamUnavailable
from tripplanner.core.planning.enricher import ItineraryEnricher
from tripplanner.core.planning.generator import PlanGenerator
from tripplanner.core.planning.models import GeneratedItinerary, TripConstraints
from tripplanner.core.planning.parser import parse_plan
from tripplanner.core.planning.prompt import PromptBuilder

logger = structlog.get_logger(__name__)

ADVISORY_NOTES = (
    "This plan is a suggestion only. Place details come from OpenStreetMap; "
    "please double-check locations, opening hours and travel times before your trip. "
    "Place photos are not available from OpenStreetMap."
)


class TripIdFactory:
    """Mints ``trip-<epoch ms>`` ids that never repeat within the process."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            millis = int(self._clock() * 1000)
            if millis <= self._last:
                millis = self._last + 1
            self._last = millis
        return f"trip-{millis}"


def validate_constraints(constraints: Union[TripConstraints, Mapping[str, Any]], max_days: int) -> TripConstraints:
    if not isinstance(constraints, TripConstraints):
        try:
            constraints = TripConstraints.model_validate(dict(constraints or {}))
        except ValidationError as e:
            raise InvalidInput(
                "Missing or invalid trip parameters. Please ensure all fields are provided.",
                errors=[
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
            )
    if constraints.day_count > max_days:
        raise InvalidInput(f"Trips longer than {max_days} days are not supported.")
    return constraints


class TripPlanner:
    def __init__(
        self,
        prompt_builder: PromptBuilder,
        generator: Optional[PlanGenerator],
        enricher: ItineraryEnricher,
        destination: str,
        max_days: int = 30,
        excerpt_length: int = 500,
        timeout: Optional[float] = None,
        trip_ids: Optional[TripIdFactory] = None,
    ):
        self.prompt_builder = prompt_builder
        self.generator = generator
        self.enricher = enricher
        self.destination = destination
        self.max_days = max_days
        self.excerpt_length = excerpt_length
        self.timeout = timeout
        self.trip_ids = trip_ids or TripIdFactory()

    @property
    def generation_enabled(self) -> bool:
        return self.generator is not None

    async def plan(
        self,
        constraints: Union[TripConstraints, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> GeneratedItinerary:
        """Produce a finished, geocoded itinerary or raise a PlanningError."""
        constraints = validate_constraints(constraints, self.max_days)
        deadline = timeout if timeout is not None else self.timeout
        if not deadline:
            return await self._run(constraints)
        try:
            return await asyncio.wait_for(self._run(constraints), timeout=deadline)
        except asyncio.TimeoutError:
            logger.error("plan_timeout", timeout_seconds=deadline)
            raise PlanningTimeout(f"Trip planning did not finish within {deadline:g} seconds.")

    async def _run(self, constraints: TripConstraints) -> GeneratedItinerary:
        if self.generator is None:
            raise UpstreamUnavailable("Trip generation is not configured on this server.")

        days = constraints.day_count
        prompt = self.prompt_builder.build(constraints, days)
        raw_text = await self.generator.generate(prompt)
        parsed = parse_plan(raw_text, excerpt_length=self.excerpt_length)

        if len(parsed.plan) != days:
            logger.warning("plan_day_count_mismatch", requested=days, received=len(parsed.plan))

        enriched = await self.enricher.enrich(parsed, start_date=constraints.start_date)
        itinerary = GeneratedItinerary(
            trip_id=self.trip_ids(),
            destination=self.destination,
            start_date=constraints.start_date,
            end_date=constraints.end_date,
            plan=enriched.plan,
            notes=ADVISORY_NOTES,
        )
        logger.info("itinerary_generated", trip_id=itinerary.trip_id, days=len(itinerary.plan))
        return itinerary
