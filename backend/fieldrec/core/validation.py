from collections.abc import Mapping, Sequence

from fieldrec.constants import API_SETTABLE_FIELDS, API_UPDATABLE_FIELDS
from fieldrec.core.errors import InvalidField, InvalidLocation


def validate_location(value):
    """Normalise a location to ``[lat, lon]`` or raise ``InvalidLocation``.

    Accepts ``None``, a two item sequence, a ``{"lat": .., "lng": ..}``
    mapping, or a GeoJSON point (whose coordinates are ``[lon, lat]``).
    """
    if value is None:
        return None

    if isinstance(value, Mapping):
        if "coordinates" in value:
            coords = value["coordinates"]
            if not isinstance(coords, Sequence) or len(coords) != 2:
                raise InvalidLocation(f"Bad GeoJSON coordinates: {coords!r}")
            lat, lon = coords[1], coords[0]
        else:
            lat = value.get("lat", value.get("latitude"))
            lon = value.get("lng", value.get("lon", value.get("longitude")))
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if len(value) != 2:
            raise InvalidLocation(f"Location needs two values, got {len(value)}")
        if any(isinstance(v, bool) for v in value):
            raise InvalidLocation(f"Location is not numeric: {value!r}")
        lat, lon = value
    else:
        raise InvalidLocation(f"Unsupported location value: {value!r}")

    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise InvalidLocation(f"Location is not numeric: {value!r}") from None

    if not -90.0 <= lat <= 90.0:
        raise InvalidLocation(f"Latitude out of range: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InvalidLocation(f"Longitude out of range: {lon}")
    return [lat, lon]


def check_settable(payload: Mapping) -> dict:
    """Fields an uploading device may populate at ingestion."""
    return _check_allowed(payload, API_SETTABLE_FIELDS)


def check_updatable(updates: Mapping) -> dict:
    """Fields a user may change on an existing recording."""
    return _check_allowed(updates, API_UPDATABLE_FIELDS)


def _check_allowed(values: Mapping, allowed) -> dict:
    rejected = set(values) - set(allowed)
    if rejected:
        raise InvalidField(rejected, allowed)
    values = dict(values)
    if "location" in values:
        values["location"] = validate_location(values["location"])
    return values
