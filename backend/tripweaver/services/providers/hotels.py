"""Hotel providers — Booking.com, Expedia and Airbnb via RapidAPI, plus the synthetic fallback."""

from typing import Any

from tripweaver.schemas.results import FALLBACK_SOURCE, HotelListing
from tripweaver.schemas.travel import Coordinates, HotelSearchParams
from tripweaver.services.provider_cascade import HttpProvider, SyntheticProvider
from tripweaver.services.providers import seeded_rng

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x200?text=Hotel"


class RapidApiHotelProvider(HttpProvider[HotelSearchParams, HotelListing]):
    """Shared RapidAPI plumbing: key + host headers on every call."""

    host: str = ""

    def __init__(self, api_key: str, timeout: float = 15.0):
        super().__init__(f"https://{self.host}", timeout)
        self._api_key = api_key

    async def _rapidapi_get(self, path: str, query: dict) -> Any:
        self._require(self._api_key, what=f"RapidAPI key for {self.name}")
        return await self._request_json(
            "GET",
            path,
            params=query,
            headers={"X-RapidAPI-Key": self._api_key, "X-RapidAPI-Host": self.host},
        )


class BookingHotelProvider(RapidApiHotelProvider):
    name = "booking"
    host = "booking-com.p.rapidapi.com"

    async def fetch(self, params: HotelSearchParams) -> Any:
        return await self._rapidapi_get("/v1/hotels/search", {
            "units": "metric",
            "room_number": "1",
            "checkin_date": params.check_in_date.isoformat(),
            "checkout_date": params.check_out_date.isoformat(),
            "adults_number": params.travelers,
            "children_number": "0",
            "categories_filter_ids": "class::2,class::4,free_cancellation::1",
            "page_number": "0",
            "dest_id": params.destination_id or params.destination,
            "dest_type": "city",
            "order_by": "price",
            "filter_by_currency": "USD",
            "locale": "en-us",
        })

    def transform(self, raw: Any, params: HotelSearchParams) -> list[HotelListing]:
        listings = []
        for hotel in raw["result"]:
            breakfast = bool(hotel.get("hotel_include_breakfast"))
            total = float(hotel["min_total_price"])
            listings.append(HotelListing(
                id=f"booking-{hotel['hotel_id']}",
                name=hotel["hotel_name"],
                rating=round(float(hotel.get("review_score") or 0) / 2, 1),  # 10 → 5 scale
                price_per_night=round(total / params.nights, 2),
                image_url=hotel.get("max_photo_url") or PLACEHOLDER_IMAGE,
                amenities=["Breakfast"] if breakfast else [],
                location=hotel.get("address", ""),
                description=hotel["hotel_name"],
                cancellation_policy="Free cancellation",
                breakfast=breakfast,
                coordinates=Coordinates(lat=hotel.get("latitude") or 0, lng=hotel.get("longitude") or 0),
                distance_from_city_center=_as_float(hotel.get("distance")),
                source=self.name,
            ))
        return listings


class ExpediaHotelProvider(RapidApiHotelProvider):
    name = "expedia"
    host = "hotels4.p.rapidapi.com"

    async def fetch(self, params: HotelSearchParams) -> Any:
        return await self._rapidapi_get("/properties/v2/list", {
            "destinationId": params.destination_id or params.destination,
            "pageNumber": "1",
            "pageSize": "25",
            "checkIn": params.check_in_date.isoformat(),
            "checkOut": params.check_out_date.isoformat(),
            "adults1": params.travelers,
            "sortOrder": "PRICE",
            "locale": "en_US",
            "currency": "USD",
        })

    def transform(self, raw: Any, params: HotelSearchParams) -> list[HotelListing]:
        listings = []
        for hotel in raw["data"]["propertySearch"]["properties"]:
            lead = (hotel.get("price") or {}).get("lead") or {}
            lat_lng = (hotel.get("mapMarker") or {}).get("latLng") or {}
            images = (hotel.get("propertyGallery") or {}).get("images") or []
            listings.append(HotelListing(
                id=f"expedia-{hotel['id']}",
                name=hotel["name"],
                rating=float(hotel.get("starRating") or 3.5),
                price_per_night=float(lead.get("amount") or 150),
                image_url=images[0]["image"]["url"] if images else PLACEHOLDER_IMAGE,
                amenities=[a["amenity"] for a in hotel.get("amenities") or [] if "amenity" in a],
                location=(hotel.get("address") or {}).get("street1", "Address not available"),
                description=hotel["name"],
                cancellation_policy="Varies by rate",
                coordinates=Coordinates(
                    lat=lat_lng.get("latitude") or 0, lng=lat_lng.get("longitude") or 0,
                ),
                source=self.name,
            ))
        return listings


class AirbnbHotelProvider(RapidApiHotelProvider):
    name = "airbnb"
    host = "airbnb13.p.rapidapi.com"

    async def fetch(self, params: HotelSearchParams) -> Any:
        return await self._rapidapi_get("/search-location", {
            "location": params.destination,
            "checkin": params.check_in_date.isoformat(),
            "checkout": params.check_out_date.isoformat(),
            "adults": params.travelers,
            "children": 0,
            "infants": 0,
            "page": 1,
        })

    def transform(self, raw: Any, params: HotelSearchParams) -> list[HotelListing]:
        listings = []
        for listing in raw["results"]:
            rate = ((listing.get("price") or {}).get("rate")
                    or ((listing.get("pricingQuote") or {}).get("rate") or {}).get("amount")
                    or 100)
            images = listing.get("images") or []
            listings.append(HotelListing(
                id=f"airbnb-{listing['id']}",
                name=listing["name"],
                rating=float(listing.get("rating") or 4.0),
                price_per_night=float(rate),
                image_url=images[0] if images else PLACEHOLDER_IMAGE,
                amenities=[str(a) for a in listing.get("previewAmenities") or []],
                location=listing.get("address") or listing.get("city") or "Address not available",
                description=listing["name"],
                room_type=listing.get("type") or "Entire place",
                cancellation_policy="Flexible",
                coordinates=Coordinates(lat=listing.get("lat") or 0, lng=listing.get("lng") or 0),
                source=self.name,
            ))
        return listings


class FallbackHotelProvider(SyntheticProvider[HotelSearchParams, HotelListing]):
    """Generate realistic placeholder hotels when every API fails."""

    NAMES = [
        "Grand Hotel", "Seaside Resort", "City Center Inn", "Mountain View Lodge",
        "Business Hotel", "Boutique Hotel", "Luxury Resort", "Comfort Inn",
    ]
    AMENITIES = [
        ["WiFi", "Pool"], ["WiFi", "Gym"], ["WiFi", "Spa"], ["WiFi", "Restaurant"],
        ["WiFi", "Bar"], ["WiFi", "Parking"], ["WiFi", "Room Service"],
    ]

    def generate(self, params: HotelSearchParams) -> list[HotelListing]:
        rng = seeded_rng(
            "hotel", params.destination,
            params.check_in_date.isoformat(), params.check_out_date.isoformat(),
        )
        listings = []
        for i, name in enumerate(self.NAMES):
            amenities = self.AMENITIES[i % len(self.AMENITIES)]
            listings.append(HotelListing(
                id=f"fallback-{i + 1}",
                name=name,
                rating=rng.choice([3.5, 4.0, 4.5]),
                price_per_night=float(rng.randint(80, 279)),
                image_url=PLACEHOLDER_IMAGE,
                amenities=list(amenities),
                location=f"{params.destination} City Center",
                description=f"Comfortable accommodation in {params.destination}",
                cancellation_policy="Free cancellation",
                breakfast=rng.random() > 0.5,
                parking="Parking" in amenities,
                distance_from_airport=float(rng.randint(10, 39)),
                distance_from_city_center=float(rng.randint(1, 5)),
                source=FALLBACK_SOURCE,
            ))
        return listings


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
