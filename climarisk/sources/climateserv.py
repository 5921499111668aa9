"""CHIRPS daily rainfall through the ClimateSERV job API.

ClimateSERV is asynchronous on its side: a request is submitted, its progress
polled, and the data fetched once the job reports 100 %. ``ChirpsSource`` hides
that behind one blocking ``fetch_series`` call with a bounded poll loop, so the
gatherer sees an ordinary fetch that either returns or raises.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Tuple

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import Absent, DailySeries, SeriesSignal
from ..utils import Location, TimeWindow
from ..utils.aoi import aoi_to_geojson

LOGGER = logging.getLogger(__name__)

CLIMATESERV_URL = "https://climateserv.servirglobal.net/api/"
CHIRPS_DATATYPE = 0
DAILY_INTERVAL = 0
AVERAGE_OPERATION = 5
# CHIRPS cells are 0.05 deg; a half-cell square selects the pixel under the point.
POINT_HALF_WIDTH_DEG = 0.025


class ChirpsSource:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
        poll_timeout: float = 40.0,
        base_url: str = CLIMATESERV_URL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session or build_session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.base_url = base_url.rstrip("/") + "/"
        self._sleep = sleep
        self._clock = clock

    def _call(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = self.base_url + endpoint
        LOGGER.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable("chirps", f"{endpoint}: {exc}") from exc

    def submit(self, location: Location, window: TimeWindow) -> str:
        params = {
            "datatype": CHIRPS_DATATYPE,
            "begintime": window.start.strftime("%m/%d/%Y"),
            "endtime": window.end.strftime("%m/%d/%Y"),
            "intervaltype": DAILY_INTERVAL,
            "operationtype": AVERAGE_OPERATION,
            "geometry": json.dumps(aoi_to_geojson(location.buffer_bbox(POINT_HALF_WIDTH_DEG))),
        }
        body = self._call("GET", "submitDataRequest/", params=params)
        job_id = body[0] if isinstance(body, list) and body else body
        if not isinstance(job_id, str) or not job_id:
            raise UpstreamUnavailable("chirps", f"Unexpected submit response: {body!r}")
        return job_id

    def wait(self, job_id: str) -> None:
        deadline = self._clock() + self.poll_timeout
        while True:
            body = self._call("GET", "getDataRequestProgress/", params={"id": job_id})
            progress = body[0] if isinstance(body, list) and body else body
            try:
                progress = float(progress)
            except (TypeError, ValueError):
                raise UpstreamUnavailable("chirps", f"Unexpected progress response: {body!r}") from None
            if progress < 0:
                raise UpstreamUnavailable("chirps", f"Job {job_id} failed upstream")
            if progress >= 100:
                return
            if self._clock() >= deadline:
                raise UpstreamUnavailable("chirps", f"Job {job_id} still at {progress:.0f}% after {self.poll_timeout}s")
            self._sleep(self.poll_interval)

    def collect(self, job_id: str) -> List[Tuple[date, float]]:
        body = self._call("GET", "getDataFromRequest/", params={"id": job_id})
        rows = body.get("data") if isinstance(body, dict) else None
        if rows is None:
            raise UpstreamUnavailable("chirps", "Response has no data rows")

        pairs: List[Tuple[date, float]] = []
        for row in rows:
            value = (row.get("value") or {}).get("avg")
            if value is None or float(value) < 0:
                continue
            pairs.append((datetime.strptime(row["date"], "%m/%d/%Y").date(), float(value)))
        return pairs

    def fetch_series(self, location: Location, window: TimeWindow) -> SeriesSignal:
        job_id = self.submit(location, window)
        self.wait(job_id)
        pairs = self.collect(job_id)
        if not pairs:
            return Absent(f"CHIRPS returned no rainfall for {window}")
        return DailySeries.from_pairs(pairs, "mm/day")
