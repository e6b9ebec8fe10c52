"""
Shared fixtures: an in-memory requests session that routes by URL suffix
"""

import json

import pytest
import requests

from gotnodes.aggregator import MetricsAggregator
from gotnodes.cache import TTLCache
from gotnodes.config import Settings
from gotnodes.upstream import UpstreamClient


def make_response(status=200, payload=None, text=None, url=""):
    response = requests.Response()
    response.status_code = status
    response.reason = "OK" if status < 400 else "Error"
    if text is None:
        text = json.dumps(payload)
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    return response


class StubSession:
    """Stands in for requests.Session; unmatched URLs get a 404"""

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, method, suffix, payload=None, status=200, text=None, exc=None):
        self.routes.append((method.upper(), suffix, payload, status, text, exc))
        return self

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append({
            "method": method.upper(),
            "url": url,
            "headers": headers or {},
            "params": params,
            "json": json,
            "timeout": timeout,
        })
        path = url.split("?", 1)[0]
        # Later registrations win
        for route_method, suffix, payload, status, text, exc in reversed(self.routes):
            if route_method == method.upper() and path.endswith(suffix):
                if exc is not None:
                    raise exc
                return make_response(status, payload, text, url)
        return make_response(404, text="not found", url=url)

    def calls_to(self, suffix, method=None):
        return [
            call for call in self.calls
            if call["url"].split("?", 1)[0].endswith(suffix) and (method is None or call["method"] == method)
        ]


@pytest.fixture
def stub_session():
    return StubSession()


@pytest.fixture
def client(stub_session):
    return UpstreamClient(timeout=5, session=stub_session, cache=TTLCache(default_ttl=120))


@pytest.fixture
def settings():
    return Settings(
        beaconchain_api_key="bc-key",
        glacier_api_key="glacier-key",
        llama_api_key=None,
        timeout=5,
        max_workers=4,
    )


@pytest.fixture
def aggregator(settings, client):
    return MetricsAggregator(settings, client=client)
