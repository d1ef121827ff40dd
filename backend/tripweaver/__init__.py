"""Tripweaver — travel data aggregation and itinerary synthesis."""

__version__ = "0.1.0"
