"""NDVI / NDWI from Sentinel-2 L2A through the Sentinel Hub Statistical API."""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import date, timedelta
from typing import Any, Dict, Optional

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import Absent, IndexSignal, IndexValue
from ..utils import Location

LOGGER = logging.getLogger(__name__)

TOKEN_URL = "https://services.sentinel-hub.com/oauth/token"
STATISTICS_URL = "https://services.sentinel-hub.com/api/v1/statistics"
CRS84 = "http://www.opengis.net/def/crs/OGC/1.3/CRS84"

# (B08 - B04) / (B08 + B04) and (B03 - B08) / (B03 + B08)
EVALSCRIPTS = {
    "ndvi": ("B04", "B08", "(s.B08 - s.B04) / (s.B08 + s.B04)"),
    "ndwi": ("B03", "B08", "(s.B03 - s.B08) / (s.B03 + s.B08)"),
}


def evalscript(index: str) -> str:
    first, second, formula = EVALSCRIPTS[index]
    return f"""//VERSION=3
function setup() {{
  return {{
    input: [{{bands: ["{first}", "{second}", "SCL", "dataMask"]}}],
    output: [
      {{id: "index", bands: 1, sampleType: "FLOAT32"}},
      {{id: "dataMask", bands: 1}}
    ]
  }};
}}
function evaluatePixel(s) {{
  // Drop cloud (8, 9, 10) and shadow (3) pixels.
  var clear = [3, 8, 9, 10].indexOf(s.SCL) === -1;
  return {{index: [{formula}], dataMask: [s.dataMask && clear ? 1 : 0]}};
}}
"""


def latest_mean(payload: Dict[str, Any]) -> Optional[float]:
    """Mean of the most recent interval that has valid pixels."""

    intervals = payload.get("data") or []
    for entry in sorted(intervals, key=lambda item: (item.get("interval") or {}).get("from", ""), reverse=True):
        try:
            stats = entry["outputs"]["index"]["bands"]["B0"]["stats"]
        except (KeyError, TypeError):
            continue
        mean = stats.get("mean")
        if mean is None or stats.get("sampleCount", 0) <= stats.get("noDataCount", 0):
            continue
        mean = float(mean)
        if not math.isnan(mean):
            return mean
    return None


class SentinelHubIndexSource:
    """``fetch_index`` for ``ndvi`` (vegetation) or ``ndwi`` (moisture)."""

    def __init__(
        self,
        index: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        lookback_days: int = 30,
        half_width_deg: float = 0.005,
    ):
        if index not in EVALSCRIPTS:
            raise ValueError(f"Unsupported index: {index}")
        self.index = index
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or build_session()
        self.timeout = timeout
        self.lookback_days = lookback_days
        self.half_width_deg = half_width_deg
        self._token: Optional[str] = None
        self._token_expiry = 0.0
        self._lock = threading.Lock()

    def _access_token(self) -> str:
        if not self.client_id or not self.client_secret:
            raise UpstreamUnavailable("sentinel_hub", "SENTINEL_HUB_CLIENT_ID / SENTINEL_HUB_CLIENT_SECRET not set")
        with self._lock:
            if self._token and time.monotonic() < self._token_expiry:
                return self._token
            LOGGER.debug("Requesting Sentinel Hub token")
            try:
                response = self.session.post(
                    TOKEN_URL,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    timeout=self.timeout,
                )
                response.raise_for_status()
                body = response.json()
                token = body["access_token"]
            except (requests.RequestException, ValueError, KeyError) as exc:
                raise UpstreamUnavailable("sentinel_hub", f"OAuth failed: {exc}") from exc
            # Refresh a minute early.
            self._token = token
            self._token_expiry = time.monotonic() + float(body.get("expires_in", 3600)) - 60
            return token

    def request_body(self, location: Location, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        start = today - timedelta(days=self.lookback_days)
        return {
            "input": {
                "bounds": {"bbox": list(location.buffer_bbox(self.half_width_deg)), "properties": {"crs": CRS84}},
                "data": [{"type": "sentinel-2-l2a", "dataFilter": {"maxCloudCoverage": 40}}],
            },
            "aggregation": {
                "timeRange": {"from": f"{start.isoformat()}T00:00:00Z", "to": f"{today.isoformat()}T23:59:59Z"},
                "aggregationInterval": {"of": "P10D"},
                "evalscript": evalscript(self.index),
                "resx": 0.0001,
                "resy": 0.0001,
            },
        }

    def fetch_index(self, location: Location) -> IndexSignal:
        token = self._access_token()
        LOGGER.debug("POST %s (%s) for %s", STATISTICS_URL, self.index, location)
        try:
            response = self.session.post(
                STATISTICS_URL,
                json=self.request_body(location),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable("sentinel_hub", str(exc)) from exc

        mean = latest_mean(payload)
        if mean is None:
            return Absent(f"{self.index}: no cloud-free scene in the last {self.lookback_days} days")
        return IndexValue(max(-1.0, min(1.0, mean)), self.index)
