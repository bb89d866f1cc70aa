"""
Raw market_chart payloads: live CoinGecko fetch or a local JSON snapshot
"""

import json
import os

import requests

MARKET_CHART_URL = "https://api.coingecko.com/api/v3/coins/{coin}/market_chart"
DEFAULT_TIMEOUT = 30


class DataSourceError(Exception):
    """The raw payload could not be obtained"""


def fetch_market_chart(coin='ethereum', vs_currency='usd', days='max',
                       timeout=DEFAULT_TIMEOUT, session=None):
    """GET /coins/{coin}/market_chart and return the decoded JSON body"""
    url = MARKET_CHART_URL.format(coin=coin)
    http = session or requests

    print(f"📥 Fetching {coin} market chart ({vs_currency}, days={days})...")
    try:
        response = http.get(
            url,
            headers={'accept': 'application/json'},
            params={'vs_currency': vs_currency, 'days': days},
            timeout=timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as e:
        raise DataSourceError(f"fetch from {url} failed: {e}") from e
    except ValueError as e:
        raise DataSourceError(f"response from {url} is not JSON: {e}") from e

    return payload


def load_snapshot(path):
    """Read a previously saved market_chart response"""
    print(f"📥 Loading snapshot {path}...")

    if not os.path.exists(path):
        raise DataSourceError(f"snapshot not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise DataSourceError(f"could not read snapshot {path}: {e}") from e


def save_snapshot(payload, path):
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f)
    except OSError as e:
        raise DataSourceError(f"could not write snapshot {path}: {e}") from e

    print(f"💾 Saved snapshot {path}")
