import pytest

from core.errors import LocationError, LocationFailure, LocationRequired
from models.shift_record import LocationReport
from utils.geolocation import LocationPolicy, read_location, resolve_location


def test_reads_coordinates():
    point = read_location(LocationReport(lat=53.3498, lng=-6.2603))
    assert (point.lat, point.lng) == (53.3498, -6.2603)


@pytest.mark.parametrize(
    "report, kind",
    [
        (None, LocationFailure.UNAVAILABLE),
        (LocationReport(error_code=1), LocationFailure.PERMISSION_DENIED),
        (LocationReport(error_code=2), LocationFailure.UNAVAILABLE),
        (LocationReport(error_code=3), LocationFailure.TIMEOUT),
        (LocationReport(lat=53.0), LocationFailure.UNAVAILABLE),
        (LocationReport(lat=95.0, lng=0.0), LocationFailure.UNAVAILABLE),
    ],
)
def test_failures_are_typed(report, kind):
    with pytest.raises(LocationError) as exc_info:
        read_location(report)
    assert exc_info.value.kind == kind


def test_only_permission_denied_is_final():
    assert LocationError(LocationFailure.TIMEOUT).retryable
    assert not LocationError(LocationFailure.PERMISSION_DENIED).retryable


def test_policy():
    with pytest.raises(LocationRequired) as exc_info:
        resolve_location(LocationReport(error_code=3), LocationPolicy.REQUIRED)
    assert exc_info.value.kind == LocationFailure.TIMEOUT
    assert resolve_location(LocationReport(error_code=3), LocationPolicy.BEST_EFFORT) is None
