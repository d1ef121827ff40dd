"""Flight providers — Amadeus, Skyscanner, Google QPX and the synthetic fallback."""

import asyncio
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from tripweaver.exceptions import ProviderError
from tripweaver.schemas.results import FALLBACK_SOURCE, FlightEndpoint, FlightOffer
from tripweaver.schemas.travel import FlightSearchParams
from tripweaver.services.provider_cascade import HttpProvider, SyntheticProvider
from tripweaver.services.providers import seeded_rng

# Map our cabin codes to Amadeus / Skyscanner cabins
AMADEUS_CABINS = {
    "economy": "ECONOMY",
    "premium_economy": "PREMIUM_ECONOMY",
    "business": "BUSINESS",
    "first": "FIRST",
}
SKYSCANNER_CABINS = {
    "economy": "CABIN_CLASS_ECONOMY",
    "premium_economy": "CABIN_CLASS_PREMIUM_ECONOMY",
    "business": "CABIN_CLASS_BUSINESS",
    "first": "CABIN_CLASS_FIRST",
}

# Airline name lookup (common ones)
AIRLINE_NAMES = {
    "AC": "Air Canada", "WS": "WestJet", "AA": "American Airlines",
    "DL": "Delta Air Lines", "UA": "United Airlines", "B6": "JetBlue Airways",
    "BA": "British Airways", "LH": "Lufthansa", "AF": "Air France", "KL": "KLM",
    "LX": "Swiss", "EK": "Emirates", "QR": "Qatar Airways", "SQ": "Singapore Airlines",
    "CX": "Cathay Pacific", "NH": "ANA", "JL": "Japan Airlines", "AS": "Alaska Airlines",
    "WN": "Southwest Airlines", "IB": "Iberia", "TP": "TAP Air Portugal", "AY": "Finnair",
}

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")


def format_iso_duration(value: str | None) -> str:
    """'PT6H30M' -> '6h 30m'. Anything unparseable is returned as-is."""
    if not value:
        return ""
    m = _ISO_DURATION.fullmatch(value)
    if not m:
        return value
    hours, minutes = int(m.group(1) or 0), int(m.group(2) or 0)
    return f"{hours}h {minutes}m"


def format_minutes(total: int | None) -> str:
    if not total:
        return ""
    return f"{total // 60}h {total % 60}m"


class AmadeusFlightProvider(HttpProvider[FlightSearchParams, FlightOffer]):
    """Adapter for the Amadeus Self-Service flight-offers API (OAuth2 client credentials)."""

    name = "amadeus"

    def __init__(self, client_id: str, client_secret: str, base_url: str, timeout: float = 10.0):
        super().__init__(base_url, timeout)
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: str | None = None
        self._token_expires: datetime | None = None

    async def _ensure_token(self):
        """Get or refresh OAuth2 token."""
        if self._token and self._token_expires and datetime.now(timezone.utc) < self._token_expires:
            return

        client = await self._get_client()
        for attempt in range(3):
            try:
                resp = await client.post(
                    "/v1/security/oauth2/token",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                resp.raise_for_status()
                data = resp.json()
                self._token = data["access_token"]
                self._token_expires = datetime.now(timezone.utc) + timedelta(
                    seconds=data.get("expires_in", 1799) - 60
                )
                return
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < 2:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise ProviderError(self.name, f"token refresh failed: HTTP {e.response.status_code}") from e
            except httpx.RequestError as e:
                if attempt < 2:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise ProviderError(self.name, f"token refresh failed: {e}") from e
            except (KeyError, ValueError) as e:
                raise ProviderError(self.name, "token response malformed") from e

    async def fetch(self, params: FlightSearchParams) -> Any:
        self._require(self._client_id, self._client_secret, what="Amadeus API credentials")
        await self._ensure_token()

        query = {
            "originLocationCode": params.origin,
            "destinationLocationCode": params.destination,
            "departureDate": params.departure_date.isoformat(),
            "adults": params.travelers,
            "travelClass": AMADEUS_CABINS.get(params.cabin_class, "ECONOMY"),
            "currencyCode": "USD",
            "max": 50,
        }
        if params.return_date:
            query["returnDate"] = params.return_date.isoformat()

        return await self._request_json(
            "GET",
            "/v2/shopping/flight-offers",
            params=query,
            headers={"Authorization": f"Bearer {self._token}"},
        )

    def transform(self, raw: Any, params: FlightSearchParams) -> list[FlightOffer]:
        return [self._parse_offer(offer) for offer in raw.get("data", [])]

    def _parse_offer(self, offer: dict) -> FlightOffer:
        itinerary = offer["itineraries"][0]
        segments = itinerary["segments"]
        first, last = segments[0], segments[-1]
        airline_code = offer.get("validatingAirlineCodes", [first["carrierCode"]])[0]
        fare = offer.get("travelerPricings", [{}])[0].get("fareDetailsBySegment", [{}])[0]
        pricing = offer.get("pricingOptions", {})

        return FlightOffer(
            id=f"amadeus-{offer['id']}",
            airline=AIRLINE_NAMES.get(airline_code, airline_code),
            airline_code=airline_code,
            flight_number=f"{first['carrierCode']}{first['number']}",
            departure=FlightEndpoint(
                airport=first["departure"]["iataCode"],
                airport_code=first["departure"]["iataCode"],
                time=first["departure"]["at"],
                city=first["departure"]["iataCode"],
                terminal=first["departure"].get("terminal"),
            ),
            arrival=FlightEndpoint(
                airport=last["arrival"]["iataCode"],
                airport_code=last["arrival"]["iataCode"],
                time=last["arrival"]["at"],
                city=last["arrival"]["iataCode"],
                terminal=last["arrival"].get("terminal"),
            ),
            duration=format_iso_duration(itinerary.get("duration")),
            price=float(offer["price"]["total"]),
            currency=offer["price"].get("currency", "USD"),
            stops=len(segments) - 1,
            aircraft=first.get("aircraft", {}).get("code", "Unknown"),
            cabin_class=fare.get("cabin", "ECONOMY").title(),
            baggage_allowance=str(
                fare.get("includedCheckedBags", {}).get("weight")
                or fare.get("includedCheckedBags", {}).get("quantity")
                or "Not included"
            ),
            refundable="PUBLISHED" in (pricing.get("fareType") or []),
            changeable=pricing.get("changePenalty") is False,
            source=self.name,
        )


class SkyscannerFlightProvider(HttpProvider[FlightSearchParams, FlightOffer]):
    """Adapter for Skyscanner live search (v3). Uses the results returned by ``create``."""

    name = "skyscanner"

    def __init__(self, api_key: str, base_url: str, timeout: float = 15.0):
        super().__init__(base_url, timeout)
        self._api_key = api_key

    async def fetch(self, params: FlightSearchParams) -> Any:
        self._require(self._api_key, what="Skyscanner API key")
        d = params.departure_date
        body = {
            "query": {
                "market": "US",
                "locale": "en-US",
                "currency": "USD",
                "queryLegs": [{
                    "originPlaceId": {"iata": params.origin},
                    "destinationPlaceId": {"iata": params.destination},
                    "date": {"year": d.year, "month": d.month, "day": d.day},
                }],
                "adults": params.travelers,
                "childrenAges": [],
                "cabinClass": SKYSCANNER_CABINS.get(params.cabin_class, "CABIN_CLASS_ECONOMY"),
            }
        }
        return await self._request_json(
            "POST",
            "/flights/live/search/create",
            json=body,
            headers={"x-api-key": self._api_key},
        )

    def transform(self, raw: Any, params: FlightSearchParams) -> list[FlightOffer]:
        results = raw.get("content", {}).get("results", {})
        legs = results.get("legs", {})
        segments = results.get("segments", {})
        carriers = results.get("carriers", {})
        places = results.get("places", {})

        def iata(place_id: str) -> str:
            return places.get(place_id, {}).get("iata", place_id)

        def stamp(dt: dict) -> str:
            return (
                f"{dt['year']:04d}-{dt['month']:02d}-{dt['day']:02d}"
                f"T{dt.get('hour', 0):02d}:{dt.get('minute', 0):02d}:00"
            )

        offers = []
        for itin_id, itin in results.get("itineraries", {}).items():
            leg = legs[itin["legIds"][0]]
            carrier_id = (leg.get("marketingCarrierIds") or leg.get("operatingCarrierIds"))[0]
            carrier = carriers.get(carrier_id, {})
            code = carrier.get("iata", carrier_id)
            first_segment = segments.get((leg.get("segmentIds") or [""])[0], {})
            number = first_segment.get("marketingFlightNumber", itin_id[-4:])
            price = itin["pricingOptions"][0]["price"]
            amount = float(price["amount"])
            if price.get("unit", "PRICE_UNIT_MILLI") == "PRICE_UNIT_MILLI":
                amount /= 1000

            offers.append(FlightOffer(
                id=f"skyscanner-{itin_id}",
                airline=carrier.get("name", code),
                airline_code=code,
                flight_number=f"{code}{number}",
                departure=FlightEndpoint(
                    airport=iata(leg["originPlaceId"]),
                    airport_code=iata(leg["originPlaceId"]),
                    time=stamp(leg["departureDateTime"]),
                    city=iata(leg["originPlaceId"]),
                ),
                arrival=FlightEndpoint(
                    airport=iata(leg["destinationPlaceId"]),
                    airport_code=iata(leg["destinationPlaceId"]),
                    time=stamp(leg["arrivalDateTime"]),
                    city=iata(leg["destinationPlaceId"]),
                ),
                duration=format_minutes(leg.get("durationInMinutes")),
                price=round(amount, 2),
                stops=leg.get("stopCount", 0),
                source=self.name,
            ))
        return offers


class GoogleFlightsProvider(HttpProvider[FlightSearchParams, FlightOffer]):
    """Adapter for the Google QPX Express trips search."""

    name = "google"

    def __init__(self, api_key: str, base_url: str, timeout: float = 15.0):
        super().__init__(base_url, timeout)
        self._api_key = api_key

    async def fetch(self, params: FlightSearchParams) -> Any:
        self._require(self._api_key, what="Google Flights API key")
        body = {
            "request": {
                "passengers": {"adultCount": params.travelers},
                "slice": [{
                    "origin": params.origin,
                    "destination": params.destination,
                    "date": params.departure_date.isoformat(),
                }],
                "solutions": 20,
                "refundable": False,
            }
        }
        return await self._request_json(
            "POST",
            "/trips/search",
            params={"key": self._api_key},
            json=body,
        )

    def transform(self, raw: Any, params: FlightSearchParams) -> list[FlightOffer]:
        offers = []
        for option in raw["trips"].get("tripOption", []):
            slice_ = option["slice"][0]
            first_segment = slice_["segment"][0]
            legs = first_segment["leg"]
            flight = first_segment.get("flight", {})
            code = flight.get("carrier", "GF")
            sale_total = option["pricing"][0]["saleTotal"]

            offers.append(FlightOffer(
                id=f"google-{option['id']}",
                airline=AIRLINE_NAMES.get(code, code),
                airline_code=code,
                flight_number=f"{code}{flight.get('number', '')}",
                departure=FlightEndpoint(
                    airport=legs[0]["origin"],
                    airport_code=legs[0]["origin"],
                    time=legs[0]["departureTime"],
                    city=legs[0]["origin"],
                ),
                arrival=FlightEndpoint(
                    airport=legs[-1]["destination"],
                    airport_code=legs[-1]["destination"],
                    time=legs[-1]["arrivalTime"],
                    city=legs[-1]["destination"],
                ),
                duration=format_minutes(slice_.get("duration")),
                price=float(re.sub(r"^[A-Z]{3}", "", sale_total)),
                stops=len(slice_["segment"]) - 1,
                source=self.name,
            ))
        return offers


class FallbackFlightProvider(SyntheticProvider[FlightSearchParams, FlightOffer]):
    """Generate realistic placeholder flights when every API fails."""

    AIRLINES = ["SkyLine Airways", "Global Airlines", "Premium Air", "Express Jet"]
    AIRCRAFT = ["Boeing 737", "Airbus A320", "Boeing 787", "Airbus A350"]
    DEPARTURES = [("06:15", "12:45"), ("08:00", "14:30"), ("11:20", "17:50"),
                  ("14:05", "20:35"), ("18:40", "01:10")]

    def generate(self, params: FlightSearchParams) -> list[FlightOffer]:
        rng = seeded_rng("flight", params.origin, params.destination, params.departure_date.isoformat())
        offers = []
        for i in range(5):
            airline = self.AIRLINES[i % len(self.AIRLINES)]
            code = airline[:2].upper()
            dep, arr = self.DEPARTURES[i]
            offers.append(FlightOffer(
                id=f"fallback-{i + 1}",
                airline=airline,
                airline_code=code,
                flight_number=f"{code}{rng.randint(1000, 9999)}",
                departure=FlightEndpoint(
                    airport=params.origin, airport_code=params.origin,
                    time=f"{params.departure_date.isoformat()}T{dep}", city=params.origin,
                ),
                arrival=FlightEndpoint(
                    airport=params.destination, airport_code=params.destination,
                    time=arr, city=params.destination,
                ),
                duration="6h 30m",
                price=float(rng.randint(300, 699)),
                stops=1 if rng.random() > 0.7 else 0,
                aircraft=self.AIRCRAFT[i % len(self.AIRCRAFT)],
                cabin_class="Economy",
                baggage_allowance="1 checked bag",
                refundable=False,
                changeable=True,
                source=FALLBACK_SOURCE,
            ))
        return offers
