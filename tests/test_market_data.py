"""Tests for market_chart payload decoding and series views."""

import math

import pandas as pd
import pytest

from market_data import (
    MAX_MILLIS,
    MIN_MILLIS,
    Dataset,
    MalformedPayloadError,
    MalformedSampleError,
    Sample,
    parse_sample,
    parse_series,
)

MERGE_MILLIS = 1663224180000
MERGE_TIME = pd.Timestamp('2022-09-15T06:43:00Z')


def test_parse_sample_null_value_is_absent():
    sample = parse_sample([MERGE_MILLIS, None])
    assert sample.value is None
    assert sample.timestamp == MERGE_TIME
    assert str(sample.timestamp.tz) == 'UTC'


def test_parse_sample_integer_and_float_values_are_equivalent():
    assert parse_sample([MERGE_MILLIS, 1450.0]) == parse_sample([MERGE_MILLIS, 1450])
    assert isinstance(parse_sample([MERGE_MILLIS, 1450]).value, float)


def test_parse_sample_accepts_tuple():
    assert parse_sample((MERGE_MILLIS, 1.5)) == Sample(MERGE_TIME, 1.5)


@pytest.mark.parametrize('raw', [
    [MERGE_MILLIS],
    [MERGE_MILLIS, 1.0, 2.0],
    [],
    'not a pair',
    None,
])
def test_parse_sample_rejects_wrong_shape(raw):
    with pytest.raises(MalformedSampleError):
        parse_sample(raw)


@pytest.mark.parametrize('millis', ['1663224180000', 1663224180000.5, True, None])
def test_parse_sample_rejects_non_integer_timestamp(millis):
    with pytest.raises(MalformedSampleError):
        parse_sample([millis, 1.0])


@pytest.mark.parametrize('millis', [10**18, -(10**18), 2**64, MAX_MILLIS + 1, MIN_MILLIS - 1])
def test_parse_sample_rejects_out_of_range_timestamp(millis):
    with pytest.raises(MalformedSampleError, match='out of range'):
        parse_sample([millis, 1.0])


def test_parse_sample_accepts_range_edges():
    assert parse_sample([MAX_MILLIS, 1.0]).timestamp.year == 2262
    assert parse_sample([MIN_MILLIS, None]).timestamp.year == 1677


def test_out_of_range_timestamp_names_series_and_index():
    with pytest.raises(MalformedSampleError, match=r'prices\[1\].*out of range'):
        Dataset.from_payload({
            'prices': [[1000, 1.0], [10**18, 1.0]],
            'market_caps': [],
            'total_volumes': [],
        })


@pytest.mark.parametrize('value', ['1450', float('nan'), float('inf'), 10**400, -(10**400), False, [1]])
def test_parse_sample_rejects_bad_value(value):
    with pytest.raises(MalformedSampleError):
        parse_sample([MERGE_MILLIS, value])


def test_parse_series_error_names_series_and_index():
    with pytest.raises(MalformedSampleError, match=r'prices\[1\]'):
        parse_series([[1000, 1.0], [2000]], 'prices')


def test_parse_series_trusts_order_by_default():
    samples = parse_series([[3000, 1.0], [1000, 2.0]], 'prices')
    assert [s.value for s in samples] == [1.0, 2.0]


def test_parse_series_strict_order_rejects_backwards_timestamp():
    with pytest.raises(MalformedPayloadError, match='out of order'):
        parse_series([[3000, 1.0], [1000, 2.0]], 'prices', strict_order=True)


def test_parse_series_strict_order_allows_repeated_timestamp():
    samples = parse_series([[1000, 1.0], [1000, 2.0]], 'prices', strict_order=True)
    assert len(samples) == 2


def test_from_payload_requires_every_series(payload):
    del payload['total_volumes']
    with pytest.raises(MalformedPayloadError, match='total_volumes'):
        Dataset.from_payload(payload)


def test_from_payload_rejects_non_array_series(payload):
    payload['prices'] = {'1000': 10.0}
    with pytest.raises(MalformedPayloadError):
        Dataset.from_payload(payload)


def test_from_payload_rejects_non_object():
    with pytest.raises(MalformedPayloadError):
        Dataset.from_payload([[1000, 1.0]])


def test_from_payload_ignores_extra_fields(payload):
    payload['id'] = 'ethereum'
    dataset = Dataset.from_payload(payload)
    assert len(dataset.samples('prices')) == 3


def test_samples_keeps_absent_values(dataset):
    assert [s.value for s in dataset.samples('prices')] == [10.0, None, 30.0]


def test_samples_empty_series():
    dataset = Dataset.from_payload({'prices': [], 'market_caps': [], 'total_volumes': []})
    assert dataset.samples('market_caps') == ()
    assert dataset.valued_samples('market_caps') == ()


def test_samples_unknown_series(dataset):
    with pytest.raises(KeyError):
        dataset.samples('volumes')


def test_valued_samples_skips_gap(dataset):
    valued = dataset.valued_samples('prices')
    assert valued == (
        (pd.Timestamp(1000, unit='ms', tz='UTC'), 10.0),
        (pd.Timestamp(3000, unit='ms', tz='UTC'), 30.0),
    )


@pytest.mark.parametrize('name', ['prices', 'market_caps', 'total_volumes'])
def test_valued_samples_is_ordered_subset_of_samples(dataset, name):
    samples = list(dataset.samples(name))
    valued = dataset.valued_samples(name)

    assert len(valued) <= len(samples)
    assert all(s in samples for s in valued)
    assert valued == tuple(s for s in samples if s.value is not None)


def test_dataset_is_read_only(dataset):
    with pytest.raises(AttributeError):
        dataset.prices = ()


def test_to_frame_marks_absent_values_as_nan(dataset):
    df = dataset.to_frame('prices')
    assert list(df.columns) == ['timestamp', 'value']
    assert len(df) == 3
    assert math.isnan(df['value'].iloc[1])
    assert df['timestamp'].iloc[0] == pd.Timestamp(1000, unit='ms', tz='UTC')


def test_describe_counts_and_extent(dataset):
    stats = dataset.describe('market_caps')
    assert stats['samples'] == 3
    assert stats['valued_samples'] == 2
    assert stats['min_value'] == 1.0e9
    assert stats['max_value'] == 2.5e9
    assert stats['mean_value'] == pytest.approx(1.75e9)
    assert stats['last_timestamp'] == pd.Timestamp(3000, unit='ms', tz='UTC')


def test_describe_empty_series():
    dataset = Dataset.from_payload({'prices': [], 'market_caps': [], 'total_volumes': []})
    stats = dataset.describe('prices')
    assert stats['samples'] == 0
    assert stats['first_timestamp'] is None
    assert stats['max_value'] is None
