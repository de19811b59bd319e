"""
Domain converters for persisted progression payloads.

All converters are pure functions with no side effects.

Examples:
    >>> from domain.converters import encode_series, decode_series
    >>> from domain.models import Modality

    >>> payload = encode_series(samples)
    >>> samples = decode_series(Modality.FLEXIBILITY, payload)
"""

from domain.converters.series_codec import encode_series, decode_series

__all__ = [
    "encode_series",
    "decode_series",
]
