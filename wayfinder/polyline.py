"""Decoder for the provider's encoded polyline format.

Each coordinate is stored as a pair of signed deltas (latitude first) from
the previous coordinate, in units of 1e-5 degrees. A delta is zigzag encoded
and split into 5-bit chunks, least significant first. Every chunk is offset
by 63 to land in printable ASCII, and 0x20 marks that another chunk follows.
"""

from .models import Coordinates

PRECISION = 1e5


class DecodeError(ValueError):
    """Raised for truncated or otherwise malformed polyline strings."""


def _read_delta(encoded: str, index: int) -> tuple[int, int]:
    """Read one signed delta starting at index.

    Returns:
        (delta, index of the next unread character)
    """
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise DecodeError(f"Polyline truncated at offset {index}")
        chunk = ord(encoded[index]) - 63
        if chunk < 0 or chunk > 63:
            raise DecodeError(f"Invalid polyline character {encoded[index]!r} at offset {index}")
        index += 1
        result |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            break

    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode(encoded: str) -> list[Coordinates]:
    """Decode an encoded polyline into coordinates, in input order.

    An empty string decodes to an empty list. Input that ends in the middle
    of a delta, or that holds a latitude without its longitude, raises
    DecodeError; partial results are never returned.
    """
    coordinates: list[Coordinates] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        d_lat, index = _read_delta(encoded, index)
        d_lng, index = _read_delta(encoded, index)
        lat += d_lat
        lng += d_lng
        coordinates.append(Coordinates(lat=lat / PRECISION, lng=lng / PRECISION))

    return coordinates
