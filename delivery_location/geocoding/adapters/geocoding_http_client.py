import json
import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from delivery_location.config.settings import settings
from delivery_location.core.domain.location_errors import GeocodeUnavailable

logger = logging.getLogger(__name__)


class GeocodingHttpClient:
    """
    Blocking JSON-over-HTTP client for geocoding providers.
    One request per call: retries are disabled at the transport adapter,
    every failure is normalized to GeocodeUnavailable.
    """

    def __init__(
            self,
            base_url: Optional[str] = None,
            user_agent: Optional[str] = None,
            timeout: Optional[float] = None
    ):
        self.base_url = (base_url or settings.NOMINATIM_BASE_URL).rstrip("/")
        self.user_agent = user_agent or settings.NOMINATIM_USER_AGENT
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({
            "User-Agent": self.user_agent,
            "Accept-Language": f"{settings.ACCEPT_LANGUAGE},en;q=0.9",
        })
        return session

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Geocoding network error for {url}: {e}")
            raise GeocodeUnavailable(f"Request failed: {str(e)}") from e

        if not response.ok:
            logger.warning(f"Geocoding HTTP error {response.status_code} for {url}")
            raise GeocodeUnavailable(f"HTTP {response.status_code}")

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Geocoding invalid JSON from {url}: {e}")
            raise GeocodeUnavailable("Invalid JSON response") from e

    def close(self) -> None:
        self.session.close()
