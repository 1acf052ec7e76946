import pytest
import requests

import bacdive_session
from bacdive_session import (
    BacdiveHTTPError,
    BacdiveSession,
    MissingCredentialError,
    load_session_cookie,
    require_session_cookie,
)


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeHTTP:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        out = self.outcomes.pop(0)
        if isinstance(out, Exception):
            raise out
        return out

    def close(self):
        pass


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(bacdive_session, "load_dotenv", lambda *a, **k: False)


def test_cookie_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_COOKIE", " abc123 ")
    assert load_session_cookie() == "abc123"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_cookie_is_an_error(monkeypatch, value):
    if value is None:
        monkeypatch.delenv("SESSION_COOKIE", raising=False)
    else:
        monkeypatch.setenv("SESSION_COOKIE", value)
    with pytest.raises(MissingCredentialError):
        load_session_cookie()


def test_require_cookie_exits_with_diagnostic(monkeypatch):
    monkeypatch.delenv("SESSION_COOKIE", raising=False)
    with pytest.raises(SystemExit) as exc:
        require_session_cookie()
    assert exc.value.code == "Error: SESSION_COOKIE environment variable is required"


def test_cookie_from_info_file(tmp_path, monkeypatch):
    monkeypatch.delenv("SESSION_COOKIE", raising=False)
    info = tmp_path / ".bacdive_info"
    info.write_text("from-file\nignored\n")
    assert load_session_cookie(info_file=str(info)) == "from-file"


def test_session_sets_headers():
    http = FakeHTTP()
    s = BacdiveSession("tok", http=http)
    assert http.headers["Accept"] == "application/json"
    assert http.headers["Cookie"] == "bacdive_api_session=tok"
    assert s.taxon_url("Bacillus") == "https://api.bacdive.dsmz.de/taxon/Bacillus"
    assert s.fetch_url(42) == "https://api.bacdive.dsmz.de/fetch/42"


def test_session_refuses_empty_cookie():
    with pytest.raises(MissingCredentialError):
        BacdiveSession("", http=FakeHTTP())


def test_get_json_retries_transient_status():
    http = FakeHTTP(FakeResponse(503, text="busy"), FakeResponse(429), FakeResponse(200, {"ok": 1}))
    s = BacdiveSession("tok", tries=3, http=http)
    assert s.get_json("https://x/1") == {"ok": 1}
    assert len(http.calls) == 3


def test_get_json_does_not_retry_not_found():
    http = FakeHTTP(FakeResponse(404, text="nope"), FakeResponse(200, {}))
    s = BacdiveSession("tok", tries=3, http=http)
    with pytest.raises(BacdiveHTTPError) as exc:
        s.get_json("https://x/1")
    assert exc.value.status == 404
    assert len(http.calls) == 1


def test_get_json_gives_up_after_tries():
    http = FakeHTTP(requests.ConnectionError("reset"), requests.Timeout("slow"))
    s = BacdiveSession("tok", tries=2, http=http)
    with pytest.raises(BacdiveHTTPError) as exc:
        s.get_json("https://x/1")
    assert exc.value.status is None
    assert len(http.calls) == 2


def test_single_try_means_single_request():
    http = FakeHTTP(FakeResponse(500), FakeResponse(200, {}))
    s = BacdiveSession("tok", tries=1, http=http)
    with pytest.raises(BacdiveHTTPError):
        s.get_json("https://x/1")
    assert len(http.calls) == 1


def test_invalid_json_is_an_http_error():
    s = BacdiveSession("tok", http=FakeHTTP(FakeResponse(200, None, text="<html>")))
    with pytest.raises(BacdiveHTTPError):
        s.get_json("https://x/1")


@pytest.mark.parametrize("exc", [
    requests.exceptions.ChunkedEncodingError("cut"),
    requests.exceptions.ContentDecodingError("gzip"),
    requests.exceptions.TooManyRedirects("loop"),
    requests.exceptions.InvalidURL("bad"),
])
def test_other_transport_errors_become_http_errors(exc):
    http = FakeHTTP(exc, FakeResponse(200, {}))
    s = BacdiveSession("tok", tries=3, http=http)
    with pytest.raises(BacdiveHTTPError) as err:
        s.get_json("https://x/1")
    assert err.value.status is None
    assert type(exc).__name__ in str(err.value)
    assert len(http.calls) == 1


def test_unreadable_info_file_is_a_missing_credential(tmp_path):
    missing = str(tmp_path / "nope")
    with pytest.raises(MissingCredentialError):
        load_session_cookie(info_file=missing)
    with pytest.raises(SystemExit) as exc:
        require_session_cookie(info_file=missing)
    assert str(exc.value.code).startswith("Error: cannot read session cookie")
