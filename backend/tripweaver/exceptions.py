"""Error taxonomy for the aggregation and itinerary pipeline.

None of these escape a public service method: provider and generation
errors are recorded and replaced by fallback data, cache errors degrade to
a cache bypass, validation errors drop the parser to its text heuristic.
"""


class TripweaverError(Exception):
    """Base class for all pipeline errors."""


class ProviderError(TripweaverError):
    """A single upstream provider failed (timeout, auth, malformed payload)."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class CacheError(TripweaverError):
    """The cache store is unreachable or rejected an operation."""


class GenerationError(TripweaverError):
    """The text-generation backend failed before producing usable text."""


class ItineraryValidationError(TripweaverError):
    """Decoded itinerary JSON is missing the required shape."""
