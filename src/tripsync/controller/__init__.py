"""Internal controller exports for tripsync."""

from __future__ import annotations

from .trips_controller import TripsController, api_trip_to_trip

__all__ = ["TripsController", "api_trip_to_trip"]
