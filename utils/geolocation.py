# app/utils/geolocation.py

from enum import Enum
from typing import Optional

from core.errors import LocationError, LocationFailure, LocationRequired
from models.shift_record import GeoPoint, LocationReport

# Acquisition parameters handed to the device (browser Geolocation API options).
LOCATION_TIMEOUT_MS = 4000
LOCATION_HIGH_ACCURACY = True

# GeolocationPositionError codes reported by the client
_FAILURE_CODES = {
    1: LocationFailure.PERMISSION_DENIED,
    2: LocationFailure.UNAVAILABLE,
    3: LocationFailure.TIMEOUT,
}


class LocationPolicy(str, Enum):
    REQUIRED = "required"
    BEST_EFFORT = "best_effort"


def acquisition_options() -> dict:
    return {"timeout_ms": LOCATION_TIMEOUT_MS, "high_accuracy": LOCATION_HIGH_ACCURACY}


def read_location(report: Optional[LocationReport]) -> GeoPoint:
    """
    Turn what the device reported into coordinates or a typed LocationError.

    A missing report counts as "unavailable": the device never answered.
    """
    if report is None:
        raise LocationError(LocationFailure.UNAVAILABLE)

    if report.error_code is not None:
        kind = _FAILURE_CODES.get(report.error_code, LocationFailure.UNAVAILABLE)
        raise LocationError(kind, report.error_message)

    if report.lat is None or report.lng is None:
        raise LocationError(LocationFailure.UNAVAILABLE)

    if not (-90.0 <= report.lat <= 90.0) or not (-180.0 <= report.lng <= 180.0):
        raise LocationError(
            LocationFailure.UNAVAILABLE,
            f"Device reported out-of-range coordinates ({report.lat},{report.lng}).",
        )

    return GeoPoint(lat=report.lat, lng=report.lng)


def resolve_location(
    report: Optional[LocationReport], policy: LocationPolicy
) -> Optional[GeoPoint]:
    """
    Apply the deployment's location policy.

    ``required``: any failure blocks the transition with LocationRequired.
    ``best_effort``: failures degrade to ``None``.
    """
    try:
        return read_location(report)
    except LocationError as exc:
        if policy == LocationPolicy.REQUIRED:
            raise LocationRequired(
                exc.kind,
                f"Location is required for this action: {exc.detail}",
            ) from exc
        return None
