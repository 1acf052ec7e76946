"""
bacdive_session.py

Session credential and HTTP plumbing shared by every BacDive crawler script.

The BacDive web API authenticates with a single session cookie. It is read
once at startup, from the SESSION_COOKIE environment variable (a local .env
file is honoured) or from the first line of an info file:

    SESSION_COOKIE=abc123 python get_bacdive.py --start 1 --end 100
"""

import logging
import os
import time
from typing import Dict, Optional

import requests
from dotenv import load_dotenv

TAXON_BASE_URL = "https://api.bacdive.dsmz.de/taxon"
FETCH_BASE_URL = "https://api.bacdive.dsmz.de/fetch"
COOKIE_NAME = "bacdive_api_session"
SESSION_ENV_VAR = "SESSION_COOKIE"

RETRY_STATUSES = (429, 500, 502, 503, 504)


class BacdiveError(RuntimeError):
    pass


class MissingCredentialError(BacdiveError):
    pass


class BacdiveHTTPError(BacdiveError):
    """Raised for a failed upstream request; status is None for transport errors."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(f"{status or 'no response'}: {message}")
        self.status = status
        self.message = message


def load_session_cookie(env_var: str = SESSION_ENV_VAR, info_file: Optional[str] = None) -> str:
    if info_file:
        try:
            with open(info_file, "r") as f:
                tokens = f.readlines()
        except OSError as e:
            raise MissingCredentialError(f"cannot read session cookie from {info_file}: {e.strerror}")
        cookie = tokens[0].strip() if tokens else ""
    else:
        load_dotenv()
        cookie = (os.getenv(env_var) or "").strip()
    if not cookie:
        raise MissingCredentialError(f"{env_var} environment variable is required")
    return cookie


def require_session_cookie(env_var: str = SESSION_ENV_VAR, info_file: Optional[str] = None) -> str:
    """Startup gate for the CLIs: exit non-zero before any request if the cookie is missing."""
    try:
        return load_session_cookie(env_var, info_file)
    except MissingCredentialError as e:
        raise SystemExit(f"Error: {e}")


class BacdiveSession:
    """
    Authenticated GET access to the BacDive taxon and fetch endpoints.

    Transient failures (429/5xx, dropped connections, timeouts) are retried
    with exponential backoff up to `tries` attempts. Anything else, 404
    included, fails on the first response.
    """

    def __init__(
        self,
        cookie: str,
        taxon_base_url: str = TAXON_BASE_URL,
        fetch_base_url: str = FETCH_BASE_URL,
        timeout: float = 30,
        tries: int = 3,
        backoff: float = 1.5,
        http: Optional[requests.Session] = None,
    ):
        if not cookie:
            raise MissingCredentialError(f"{SESSION_ENV_VAR} environment variable is required")
        self.taxon_base_url = taxon_base_url.rstrip("/")
        self.fetch_base_url = fetch_base_url.rstrip("/")
        self.timeout = timeout
        self.tries = max(1, int(tries))
        self.backoff = backoff
        self.http = http or requests.Session()
        self.http.headers.update({
            "Accept": "application/json",
            "Cookie": f"{COOKIE_NAME}={cookie}",
        })

    def taxon_url(self, genus: str) -> str:
        return f"{self.taxon_base_url}/{genus}"

    def fetch_url(self, identifier) -> str:
        return f"{self.fetch_base_url}/{identifier}"

    def get_json(self, url: str, params: Optional[Dict] = None):
        last_error = None
        for i in range(self.tries):
            if i:
                time.sleep(self.backoff ** (i - 1))
            try:
                r = self.http.get(url, params=params or {}, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = BacdiveHTTPError(None, str(e))
                logging.warning(f"Request to {url} failed (attempt {i + 1}/{self.tries}): {e}")
                continue
            except requests.RequestException as e:
                raise BacdiveHTTPError(None, f"{type(e).__name__}: {e}") from e
            if r.status_code == 200:
                try:
                    return r.json()
                except ValueError as e:
                    raise BacdiveHTTPError(r.status_code, f"invalid JSON: {e}")
            last_error = BacdiveHTTPError(r.status_code, r.text[:300])
            if r.status_code in RETRY_STATUSES:
                logging.warning(f"BacDive {r.status_code} for {url} (attempt {i + 1}/{self.tries})")
                continue
            raise last_error
        raise last_error

    def close(self):
        self.http.close()


def start_session(info_file: Optional[str] = None, tries: int = 3, timeout: float = 30) -> BacdiveSession:
    cookie = require_session_cookie(info_file=info_file)
    return BacdiveSession(cookie, tries=tries, timeout=timeout)
