#!/usr/bin/env python3
"""
Market chart visualizer
Plots an asset's price and market cap history in two panels and marks a
reference event (the Ethereum merge by default) on both
"""

import argparse
import math
import sys

import pandas as pd

from market_data import SERIES_NAMES, Dataset, MarketDataError
from market_source import DataSourceError, fetch_market_chart, load_snapshot, save_snapshot
from chart_composer import (
    MERGE_EVENT,
    AnnotationEvent,
    ChartError,
    compose_chart,
    default_panels,
    present,
)

__version__ = '0.1.0'

DEFAULT_SNAPSHOT = 'market_chart.json'
DEFAULT_OUTPUT = 'graph.svg'


def iso_timestamp(text):
    try:
        ts = pd.Timestamp(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO 8601 time: {text!r}") from e
    if pd.isna(ts):
        raise argparse.ArgumentTypeError(f"not an ISO 8601 time: {text!r}")
    return ts


def finite_float(text):
    try:
        value = float(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from e
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"must be finite, got {text!r}")
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        prog='market-chart',
        description='Plot price and market cap history with a marked reference event',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    source = parser.add_argument_group('data source')
    source.add_argument('--fetch', action='store_true', help='fetch from the CoinGecko API instead of the snapshot')
    source.add_argument('--days', default='max', help='lookback window in days, or "max" (default: max)')
    source.add_argument('--coin', default='ethereum', help='CoinGecko coin id (default: ethereum)')
    source.add_argument('--vs-currency', default='usd', help='quote currency (default: usd)')
    source.add_argument('--snapshot', default=DEFAULT_SNAPSHOT, help=f'local JSON snapshot (default: {DEFAULT_SNAPSHOT})')
    source.add_argument('--save-snapshot', action='store_true', help='write the fetched payload to --snapshot')
    source.add_argument('--strict-order', action='store_true', help='reject series whose timestamps go backwards')

    chart = parser.add_argument_group('chart')
    chart.add_argument('--output', default=DEFAULT_OUTPUT, help=f'output image (default: {DEFAULT_OUTPUT})')
    chart.add_argument('--asset-label', default='ETH', help='asset name used in captions (default: ETH)')
    chart.add_argument('--event-date', type=iso_timestamp, default=MERGE_EVENT.timestamp.isoformat(), help='annotated event time, ISO 8601')
    chart.add_argument('--event-value', type=finite_float, default=MERGE_EVENT.value, help='annotated event value')
    chart.add_argument('--event-label', default=MERGE_EVENT.label, help='legend label of the event marker')
    chart.add_argument('--dump-volumes', action='store_true', help='print every total volume sample')

    return parser


def acquire_payload(args):
    """Live fetch or snapshot, as selected on the command line"""
    if not args.fetch:
        return load_snapshot(args.snapshot)

    payload = fetch_market_chart(coin=args.coin, vs_currency=args.vs_currency, days=args.days)
    if args.save_snapshot:
        save_snapshot(payload, args.snapshot)
    return payload


def print_summary(dataset):
    for name in SERIES_NAMES:
        stats = dataset.describe(name)
        print(f"\n📁 {name}")
        print(f"   Samples: {stats['samples']:,} ({stats['valued_samples']:,} with values)")
        if stats['samples']:
            print(f"   Range: {stats['first_timestamp']} .. {stats['last_timestamp']}")
        if stats['valued_samples']:
            print(f"   Min: {stats['min_value']:,.2f}")
            print(f"   Max: {stats['max_value']:,.2f}")
            print(f"   Mean: {stats['mean_value']:,.2f}")


def run(args, acquire=acquire_payload):
    payload = acquire(args)
    dataset = Dataset.from_payload(payload, strict_order=args.strict_order)
    print("✅ Payload parsed")

    if args.dump_volumes:
        for sample in dataset.samples('total_volumes'):
            print(sample)

    print_summary(dataset)

    event = AnnotationEvent.from_iso(args.event_date, args.event_value, args.event_label)

    print("\n📊 Composing chart...")
    figure = compose_chart(dataset, event=event, panels=default_panels(args.asset_label))
    present(figure, args.output)


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        run(args)
    except (DataSourceError, MarketDataError, ChartError) as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
