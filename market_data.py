"""
Market chart data model
Parses a market_chart payload (prices, market caps, total volumes) into
immutable series of (timestamp, optional value) samples
"""

import math
import numbers
from dataclasses import dataclass
from typing import NamedTuple, Optional

import pandas as pd
from pandas.errors import OutOfBoundsDatetime

SERIES_NAMES = ('prices', 'market_caps', 'total_volumes')

# epoch milliseconds representable as nanosecond timestamps
MIN_MILLIS = -(-pd.Timestamp.min.value // 1_000_000)
MAX_MILLIS = pd.Timestamp.max.value // 1_000_000


class MarketDataError(Exception):
    """Base error for payload decoding"""


class MalformedSampleError(MarketDataError):
    """A sample is not a [timestampMillis, valueOrNull] pair"""


class MalformedPayloadError(MarketDataError):
    """A series is missing, not an array, or out of order"""


class Sample(NamedTuple):
    timestamp: pd.Timestamp
    value: Optional[float]


def to_timestamp(millis):
    """Epoch milliseconds -> UTC timestamp"""
    if not MIN_MILLIS <= millis <= MAX_MILLIS:
        raise MalformedSampleError(f"timestamp {millis!r} ms is out of range")
    try:
        return pd.Timestamp(millis, unit='ms', tz='UTC')
    except (OutOfBoundsDatetime, OverflowError, ValueError) as e:
        raise MalformedSampleError(f"timestamp {millis!r} ms is out of range") from e


def parse_sample(raw):
    """Decode one [timestampMillis, valueOrNull] pair"""
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise MalformedSampleError(f"expected [timestamp, value], got {raw!r}")

    millis, value = raw

    # bool is an Integral subclass, it is still not a timestamp
    if isinstance(millis, bool) or not isinstance(millis, numbers.Integral):
        raise MalformedSampleError(f"timestamp must be integer milliseconds, got {millis!r}")

    if value is None:
        return Sample(to_timestamp(int(millis)), None)

    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MalformedSampleError(f"value must be a number or null, got {value!r}")

    try:
        value = float(value)
    except OverflowError as e:
        raise MalformedSampleError(f"value must be finite, got {value!r}") from e
    if not math.isfinite(value):
        raise MalformedSampleError(f"value must be finite, got {value!r}")

    return Sample(to_timestamp(int(millis)), value)


def parse_series(raw, name, strict_order=False):
    """Decode a whole series, keeping input order"""
    if not isinstance(raw, (list, tuple)):
        raise MalformedPayloadError(f"series '{name}' must be an array, got {type(raw).__name__}")

    samples = []
    for index, item in enumerate(raw):
        try:
            sample = parse_sample(item)
        except MalformedSampleError as e:
            raise MalformedSampleError(f"{name}[{index}]: {e}") from e

        if strict_order and samples and sample.timestamp < samples[-1].timestamp:
            raise MalformedPayloadError(
                f"series '{name}' is out of order at index {index}: "
                f"{sample.timestamp.isoformat()} < {samples[-1].timestamp.isoformat()}"
            )
        samples.append(sample)

    return tuple(samples)


@dataclass(frozen=True)
class Dataset:
    """The three series of one market_chart payload, read-only after parsing"""

    prices: tuple = ()
    market_caps: tuple = ()
    total_volumes: tuple = ()

    @classmethod
    def from_payload(cls, payload, strict_order=False):
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"payload must be an object, got {type(payload).__name__}")

        series = {}
        for name in SERIES_NAMES:
            if name not in payload:
                raise MalformedPayloadError(f"payload has no '{name}' series")
            series[name] = parse_series(payload[name], name, strict_order=strict_order)

        return cls(**series)

    def samples(self, name):
        if name not in SERIES_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def valued_samples(self, name):
        """Samples with a present value, in stored order"""
        return tuple(s for s in self.samples(name) if s.value is not None)

    def to_frame(self, name):
        samples = self.samples(name)
        return pd.DataFrame({
            'timestamp': pd.to_datetime([s.timestamp for s in samples], utc=True),
            'value': pd.Series([s.value for s in samples], dtype='float64'),
        })

    def describe(self, name):
        df = self.to_frame(name)
        values = df['value'].dropna()

        stats = {
            'series': name,
            'samples': len(df),
            'valued_samples': len(values),
            'first_timestamp': df['timestamp'].iloc[0] if len(df) else None,
            'last_timestamp': df['timestamp'].iloc[-1] if len(df) else None,
            'min_value': None,
            'max_value': None,
            'mean_value': None,
        }
        if len(values):
            stats['min_value'] = float(values.min())
            stats['max_value'] = float(values.max())
            stats['mean_value'] = float(values.mean())

        return stats
