from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis
    redis_url: str = "redis://localhost:6379/0"
    cache_default_ttl: int = 3600  # 1 hour

    # Cache TTLs (seconds)
    flight_search_cache_ttl: int = 1800
    flight_details_cache_ttl: int = 3600
    hotel_search_cache_ttl: int = 3600
    hotel_details_cache_ttl: int = 7200
    hotel_availability_cache_ttl: int = 1800
    weather_forecast_cache_ttl: int = 1800
    weather_current_cache_ttl: int = 900
    itinerary_cache_ttl: int = 7200

    # Upstream providers
    provider_timeout_seconds: float = 15.0

    # Amadeus
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"

    # Skyscanner
    skyscanner_api_key: str = ""
    skyscanner_base_url: str = "https://partners.api.skyscanner.net/apiservices/v3"

    # Google Flights (QPX)
    google_flights_api_key: str = ""
    google_flights_base_url: str = "https://www.googleapis.com/qpxExpress/v1"

    # RapidAPI: Booking.com, Expedia (hotels4), Airbnb
    rapidapi_key: str = ""

    # Weather
    openweather_api_key: str = ""
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    weatherapi_api_key: str = ""
    weatherapi_base_url: str = "https://api.weatherapi.com/v1"

    # OpenAI
    openai_api_key: str = ""
    itinerary_model: str = "gpt-4"
    insights_model: str = "gpt-3.5-turbo"

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    llm_timeout_seconds: float = 60.0
    insights_enabled: bool = True

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
