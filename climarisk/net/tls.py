"""
TLS and HTTP session bootstrap for the upstream clients.
- Exports the certifi CA path via env so any lib (requests, urllib3) picks it up.
- Builds requests sessions with a shared retry policy for flaky public APIs.
- Provides a small --check CLI for diagnostics.
"""

from __future__ import annotations

import os

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = "climarisk/1.0"


def ensure_tls() -> str | None:
    try:
        ca = certifi.where()
    except Exception:  # noqa: BLE001
        return None
    os.environ.setdefault("SSL_CERT_FILE", ca)
    os.environ.setdefault("REQUESTS_CA_BUNDLE", ca)
    return ca


def build_session(user_agent: str = USER_AGENT, retries: int = 3) -> requests.Session:
    """A session that verifies against certifi and retries 429/5xx with backoff."""

    session = requests.Session()
    session.verify = certifi.where()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    retry = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "HEAD", "POST"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


_CA = ensure_tls()


if __name__ == "__main__":
    import json

    info = {
        "SSL_CERT_FILE": os.environ.get("SSL_CERT_FILE"),
        "REQUESTS_CA_BUNDLE": os.environ.get("REQUESTS_CA_BUNDLE"),
        "ca_detected": _CA,
    }
    try:
        session = build_session()
        info["nasa_power_status"] = session.get("https://power.larc.nasa.gov/", timeout=30).status_code
        info["open_meteo_status"] = session.get("https://api.open-meteo.com/v1/elevation?latitude=-1.94&longitude=30.06", timeout=30).status_code
    except Exception as exc:  # noqa: BLE001
        info["probe_error"] = str(exc)

    print(json.dumps(info, indent=2))
