"""Single-shot HTTP reachability checks built on top of requests."""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional
from urllib.parse import urlsplit

import requests
from requests import RequestException

from netpinger.models import NetworkError, Outcome, Success, UnexpectedStatus

logger = logging.getLogger(__name__)

DEFAULT_PROBE_URL = "https://google.com/generate_204"
DEFAULT_PROBE_TIMEOUT = 5.0
EXPECTED_STATUS = 204


class Prober:
    """Issue one GET against a fixed endpoint and classify the result.

    Only ``204 No Content`` counts as success. Redirects are not followed so
    the classified status is always the endpoint's own. There are no internal
    retries; the monitor loop's cadence is the retry policy.
    """

    def __init__(
        self,
        url: str = DEFAULT_PROBE_URL,
        *,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.host = urlsplit(url).hostname or url
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="netpinger-probe")
        self._pending: Optional[Future] = None

    def probe(self) -> Outcome:
        try:
            response = self._session.get(self.url, timeout=self.timeout, allow_redirects=False)
        except RequestException as exc:
            outcome: Outcome = NetworkError(f"failed to reach {self.host}: {exc}")
        else:
            status = f"{response.status_code} {response.reason or ''}".strip()
            response.close()
            if response.status_code != EXPECTED_STATUS:
                outcome = UnexpectedStatus(
                    f"wrong status code returned from {self.host}: {status}",
                    status_code=response.status_code,
                )
            else:
                outcome = Success(
                    f"successfully reached {self.host}: {status}",
                    status_code=response.status_code,
                )
        logger.debug("%s", outcome.message)
        return outcome

    async def probe_async(self) -> Outcome:
        """Run :meth:`probe` on the prober's own worker, waiting at most ``timeout``.

        A request that outlives the deadline keeps the worker busy; until it
        finishes, further calls report a network error without sending
        anything, so at most one request is ever in flight.
        """
        pending = self._pending
        if pending is not None and not pending.done():
            message = f"failed to reach {self.host}: previous request still in flight"
            logger.debug("%s", message)
            return NetworkError(message)

        future = self._executor.submit(self.probe)
        self._pending = future
        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout=self.timeout)
        except asyncio.TimeoutError:
            message = f"failed to reach {self.host}: timed out after {self.timeout:g}s"
            logger.debug("%s", message)
            return NetworkError(message)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._session.close()


__all__ = ["Prober", "DEFAULT_PROBE_URL", "DEFAULT_PROBE_TIMEOUT", "EXPECTED_STATUS"]
