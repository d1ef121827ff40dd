"""FastAPI dependency getters — services are built once in the app lifespan."""

from fastapi import Request

from tripweaver.services.cache_service import CacheService
from tripweaver.services.flights_service import FlightsService
from tripweaver.services.hotels_service import HotelsService
from tripweaver.services.itinerary_orchestrator import ItineraryOrchestrator
from tripweaver.services.weather_service import WeatherService


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_flights_service(request: Request) -> FlightsService:
    return request.app.state.flights


def get_hotels_service(request: Request) -> HotelsService:
    return request.app.state.hotels


def get_weather_service(request: Request) -> WeatherService:
    return request.app.state.weather


def get_orchestrator(request: Request) -> ItineraryOrchestrator:
    return request.app.state.orchestrator
