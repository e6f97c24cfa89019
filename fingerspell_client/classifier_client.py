"""
HTTP Classifier Client for the remote sign classifier.

Handles:
- JSON POST of normalized landmarks to <base_url>/predict
- Running the blocking HTTP call off the event loop
- Mapping transport and decode failures to ClassifierError
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
import requests

from .exceptions import ClassifierError, MalformedResponseError
from .message import PredictRequest, PredictResponse

logger = logging.getLogger(__name__)

PREDICT_PATH = "/predict"


@dataclass
class ClassifierStats:
    """Statistics about classifier requests."""
    requests_sent: int = 0
    requests_failed: int = 0
    malformed_responses: int = 0
    last_latency_ms: Optional[float] = None
    last_success_time: Optional[float] = None


class HttpClassifier:
    """
    Classifier port backed by an HTTP endpoint.

    predict() is a coroutine; the underlying requests call runs on the
    client's single worker thread so the detection loop is never blocked.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize classifier client.

        Args:
            base_url: Classifier server URL (e.g., http://127.0.0.1:8000)
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.url = base_url.rstrip("/") + PREDICT_PATH
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()
        # requests.Session is not thread-safe; one worker serializes its use
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
        self.stats = ClassifierStats()

    async def predict(self, features: np.ndarray) -> List[Any]:
        """
        Classify one normalized feature vector.

        Args:
            features: Normalizer output of shape (n, 3)

        Returns:
            Probability row as returned by the server

        Raises:
            ClassifierError: Request failed, non-2xx status or invalid JSON
            MalformedResponseError: JSON body without a usable prediction row
        """
        body = PredictRequest.from_features(features).to_json()
        loop = asyncio.get_running_loop()
        started = time.monotonic()

        self.stats.requests_sent += 1
        try:
            response = await loop.run_in_executor(self._executor, self._post, body)
        except MalformedResponseError:
            self.stats.malformed_responses += 1
            raise
        except ClassifierError:
            self.stats.requests_failed += 1
            raise

        self.stats.last_latency_ms = (time.monotonic() - started) * 1000
        self.stats.last_success_time = time.time()
        logger.debug(f"Classifier responded in {self.stats.last_latency_ms:.0f}ms")
        return response.prediction

    def _post(self, body: str) -> PredictResponse:
        """Blocking POST, executed on a worker thread."""
        try:
            resp = self._session.post(
                self.url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ClassifierError(f"Classifier request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise ClassifierError(f"Classifier returned HTTP {resp.status_code}")

        return PredictResponse.from_json(resp.text)

    def close(self) -> None:
        """Close the underlying HTTP session and worker thread."""
        self._executor.shutdown(wait=False)
        self._session.close()

    def get_stats(self) -> dict:
        """Get request statistics."""
        return {
            "url": self.url,
            "requests_sent": self.stats.requests_sent,
            "requests_failed": self.stats.requests_failed,
            "malformed_responses": self.stats.malformed_responses,
            "last_latency_ms": self.stats.last_latency_ms,
            "last_success_time": self.stats.last_success_time,
        }
