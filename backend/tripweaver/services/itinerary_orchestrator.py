"""Itinerary orchestrator — analyze, prompt, generate, parse, enrich and adjust a travel plan."""

import time

from tripweaver.config import Settings
from tripweaver.exceptions import GenerationError
from tripweaver.schemas.edge_cases import EdgeCaseReport
from tripweaver.schemas.itinerary import ParsedItinerary, TravelPlan
from tripweaver.schemas.results import FlightOffer, HotelListing
from tripweaver.schemas.travel import FlightSearchParams, HotelSearchParams, TravelRequest
from tripweaver.services.cache_service import CacheService, CachedResult
from tripweaver.services.edge_case_analyzer import EdgeCaseAnalyzer
from tripweaver.services.flights_service import FlightsService
from tripweaver.services.hotels_service import HotelsService
from tripweaver.services.llm_client import LLMClient
from tripweaver.services.pipeline_config import PlanningConfig, planning_config
from tripweaver.services.plan_adjuster import PlanAdjuster
from tripweaver.services.plan_costs import calculate_budget_breakdown
from tripweaver.services.prompt_builder import build_insights_messages, build_itinerary_messages
from tripweaver.services.response_parser import (
    ParseOutcome,
    ResponseParser,
    StructuredParse,
    TemplatedParse,
    merge_insights,
)
from tripweaver.services.weather_service import WeatherService
from tripweaver.telemetry import Telemetry

ITINERARY_NAMESPACE = "ai-itinerary"
MAX_FORECAST_DAYS = 16


class ItineraryOrchestrator:
    """Builds a ``TravelPlan`` for a request. Never raises for upstream failures.

    Flight, hotel and weather services are optional; when wired in, the
    cheapest flight and hotel and the live forecast replace placeholders.
    """

    def __init__(
        self,
        cache: CacheService,
        llm: LLMClient,
        settings: Settings,
        *,
        flights: FlightsService | None = None,
        hotels: HotelsService | None = None,
        weather: WeatherService | None = None,
        config: PlanningConfig = planning_config,
        telemetry: Telemetry | None = None,
    ):
        self.cache = cache
        self.llm = llm
        self.settings = settings
        self.flights = flights
        self.hotels = hotels
        self.weather = weather
        self.config = config
        self._telemetry = telemetry or Telemetry().child("itinerary")
        self.analyzer = EdgeCaseAnalyzer(config)
        self.parser = ResponseParser(config, self._telemetry.child("parser"))
        self.adjuster = PlanAdjuster(config)

    async def generate_itinerary(self, request: TravelRequest) -> CachedResult[TravelPlan]:
        """Cached entry point: identical requests share one plan for the TTL."""
        key = self.cache.generate_key(ITINERARY_NAMESPACE, request.model_dump(mode="json"))

        async def produce() -> dict:
            plan = await self.create_itinerary(request)
            return plan.model_dump(mode="json")

        cached = await self.cache.get_or_set(key, produce, self.settings.itinerary_cache_ttl)
        return CachedResult(
            data=TravelPlan.model_validate(cached.data),
            cached=cached.cached,
            origin=cached.origin,
        )

    async def create_itinerary(self, request: TravelRequest) -> TravelPlan:
        start_time = time.monotonic()
        report = self.analyzer.analyze(request)
        if report.needs_remediation:
            self._telemetry.info(
                "Edge cases for %s: budget=%s duration=%s climate=%s",
                request.destination.name,
                report.budget_conflict.detected,
                report.duration_conflict.detected,
                report.climate_conflict.detected,
            )

        text = await self._generate(request, report)
        outcome = self.parser.parse(text, request)
        plan = outcome.plan

        if self.settings.insights_enabled and not isinstance(outcome, TemplatedParse):
            plan = await self._enhance_with_insights(plan, request)

        plan = self.adjuster.adjust(plan, report)
        travel_plan = await self._assemble(request, report, outcome, plan)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self._telemetry.generation(
            "itinerary-generation",
            self.settings.itinerary_model,
            isinstance(outcome, StructuredParse),
            elapsed_ms,
            destination=request.destination.name,
            duration=request.duration,
            travelers=request.travelers,
            source=outcome.source,
        )
        return travel_plan

    async def _generate(self, request: TravelRequest, report: EdgeCaseReport) -> str | None:
        params = self.config.generation
        try:
            return await self.llm.complete(
                self.settings.itinerary_model,
                build_itinerary_messages(request, report),
                temperature=params.itinerary_temperature,
                max_tokens=params.itinerary_max_tokens,
            )
        except GenerationError as e:
            self._telemetry.error("Itinerary generation failed, using templated plan: %s", e)
            return None

    async def _enhance_with_insights(self, plan: ParsedItinerary, request: TravelRequest) -> ParsedItinerary:
        params = self.config.generation
        try:
            text = await self.llm.complete(
                self.settings.insights_model,
                build_insights_messages(plan, request),
                temperature=params.insights_temperature,
                max_tokens=params.insights_max_tokens,
            )
        except GenerationError as e:
            self._telemetry.warning("Failed to enhance itinerary with insights: %s", e)
            return plan

        insights = self.parser.parse_insights(text)
        if insights is None:
            self._telemetry.warning("Insights response had no usable JSON, keeping plan as-is")
            return plan
        return merge_insights(plan, insights)

    async def _assemble(
        self,
        request: TravelRequest,
        report: EdgeCaseReport,
        outcome: ParseOutcome,
        plan: ParsedItinerary,
    ) -> TravelPlan:
        flight = await self._cheapest_flight(request)
        hotel = await self._cheapest_hotel(request)
        days = await self._with_forecast(request, plan)

        if hotel is not None:
            days = [d.model_copy(update={"accommodation": hotel}) for d in days]
        flights_cost = flight.price * request.travelers if flight is not None else 0.0
        breakdown = calculate_budget_breakdown(days, flights=flights_cost)

        return TravelPlan(
            destination=request.destination,
            flights=[flight] if flight is not None else [],
            hotel=hotel,
            itinerary=days,
            total_cost=breakdown.total,
            budget_breakdown=breakdown,
            confidence=plan.confidence,
            recommendations=plan.recommendations,
            warnings=plan.warnings,
            alternatives=plan.alternatives,
            reasoning=plan.reasoning,
            edge_cases=report,
            source=outcome.source,
        )

    async def _cheapest_flight(self, request: TravelRequest) -> FlightOffer | None:
        if self.flights is None or not request.departure_city:
            return None
        result = await self.flights.search_flights(FlightSearchParams(
            origin=request.departure_city,
            destination=request.destination.city or request.destination.name,
            departure_date=request.departure_date,
            return_date=request.return_date,
            travelers=request.travelers,
        ))
        items = result.data.items if result.data else []
        return items[0] if items else None

    async def _cheapest_hotel(self, request: TravelRequest) -> HotelListing | None:
        if self.hotels is None:
            return None
        result = await self.hotels.search_hotels(HotelSearchParams(
            destination=request.destination.city or request.destination.name,
            check_in_date=request.departure_date,
            check_out_date=request.return_date,
            travelers=request.travelers,
        ))
        items = result.data.items if result.data else []
        return items[0] if items else None

    async def _with_forecast(self, request: TravelRequest, plan: ParsedItinerary) -> list:
        """Swap weather stubs for forecast days where the dates overlap."""
        if self.weather is None:
            return plan.itinerary
        result = await self.weather.get_forecast(
            request.destination.city or request.destination.name,
            days=min(request.duration, MAX_FORECAST_DAYS),
        )
        if result.data is None or result.data.used_fallback:
            return plan.itinerary
        by_date = {d.date: d for d in result.data.items}
        return [
            d.model_copy(update={"weather": by_date[d.date]}) if d.date in by_date else d
            for d in plan.itinerary
        ]
