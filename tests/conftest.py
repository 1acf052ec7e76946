import pytest

from bacdive_session import BacdiveHTTPError


class FakeSession:
    """Stands in for BacdiveSession: canned JSON per (url, page), records every call."""

    taxon_base_url = "https://bacdive.test/taxon"
    fetch_base_url = "https://bacdive.test/fetch"

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def taxon_url(self, genus):
        return f"{self.taxon_base_url}/{genus}"

    def fetch_url(self, identifier):
        return f"{self.fetch_base_url}/{identifier}"

    def get_json(self, url, params=None):
        page = (params or {}).get("page")
        self.calls.append((url, page))
        key = (url, page) if page is not None else url
        if key not in self.responses:
            raise BacdiveHTTPError(404, "not found")
        resp = self.responses[key]
        if isinstance(resp, Exception):
            raise resp
        return resp

    def close(self):
        pass


class RaisingHTTP:
    """requests.Session stand-in whose every GET raises `exc`."""

    def __init__(self, exc):
        self.exc = exc
        self.headers = {}
        self.calls = 0

    def get(self, url, params=None, timeout=None):
        self.calls += 1
        raise self.exc

    def close(self):
        pass


@pytest.fixture()
def fake_session():
    return FakeSession()


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("time.sleep", lambda s: None)
