"""Client for the exam scheduling API"""
import time
from typing import Any, List, Optional
import requests

from .response_cache import ResponseCache
from ..storage.models import Appointment
from ..utils.logger import setup_logger
from ..utils.timezone import DEFAULT_TIMEZONE, format_termin

logger = setup_logger(__name__)


class ExamApiError(Exception):
    """Raised when the exam API does not deliver usable data"""


class ExamApiClient:
    """Fetches exam items from the API and maps them to appointments"""

    def __init__(
        self,
        api_url: Optional[str],
        exam_type_id: Any = 1,
        link_url: str = "",
        cache: Optional[ResponseCache] = None,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        timeout: int = 30,
        timezone: str = DEFAULT_TIMEZONE
    ):
        """
        Initialize exam API client

        Args:
            api_url: Endpoint returning {"data": [...exam items...]}
            exam_type_id: Exam type to keep (the fishing exam)
            link_url: Base of the appointment deep link, the id is appended
            cache: Optional TTL cache for raw responses
            max_retries: Retries after the first failed request
            initial_delay: Seconds before the first retry, doubled each time
            timeout: Request timeout in seconds
            timezone: Timezone used to format exam dates
        """
        self.api_url = api_url
        self.exam_type_id = exam_type_id
        self.link_url = link_url or ""
        self.cache = cache
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.timezone = timezone

    def fetch_exam_data(self) -> Optional[List[dict]]:
        """
        Fetch raw exam items, using the cache when it is fresh

        If the API fails, an expired cache entry is used as fallback.

        Returns:
            List of raw exam items, or None if no data is available
        """
        if not self.api_url:
            logger.error("The API URL is not configured (API_URL)")
            return None

        if self.cache and self.cache.is_valid(self.api_url):
            cached = self.cache.read(self.api_url)
            if isinstance(cached, list):
                logger.info("Returning data from cache")
                return cached

        try:
            data = self._request_data()
        except ExamApiError as e:
            logger.error(f"Error retrieving API data: {e}")
            if self.cache:
                cached = self.cache.read(self.api_url, allow_expired=True)
                if isinstance(cached, list):
                    logger.warning("Fetching from API failed, using expired cache as fallback")
                    return cached
            return None

        if self.cache:
            self.cache.write(self.api_url, data)
        return data

    def fetch_exam_data_no_cache(self) -> Optional[List[dict]]:
        """Fetch raw exam items directly from the API"""
        if not self.api_url:
            logger.error("The API URL is not configured (API_URL)")
            return None

        try:
            return self._request_data()
        except ExamApiError as e:
            logger.error(f"Error retrieving API data: {e}")
            return None

    def _request_data(self) -> List[dict]:
        """Request the API and return the 'data' field of the response"""
        response = self._fetch_with_retry()
        try:
            body = response.json()
        except ValueError as e:
            raise ExamApiError(f"API returned invalid JSON: {e}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise ExamApiError("API response has no 'data' list")

        logger.info(f"Received {len(data)} exam items from API")
        return data

    def _fetch_with_retry(self) -> requests.Response:
        """
        GET the API with exponential backoff

        Network errors, HTTP 429 and 5xx responses are retried; a
        Retry-After header replaces the current delay.

        Raises:
            ExamApiError: on a non-retryable status or when retries run out
        """
        retries = 0
        delay = self.initial_delay

        while True:
            try:
                logger.debug(f"Fetching exam data from {self.api_url}")
                response = requests.get(self.api_url, timeout=self.timeout)
            except requests.RequestException as e:
                if retries >= self.max_retries:
                    raise ExamApiError(f"API request failed: {e}") from e
                logger.warning(f"Retry {retries + 1}/{self.max_retries} after {delay:.1f}s: {e}")
            else:
                if response.ok:
                    return response

                status = response.status_code
                retryable = status == 429 or status >= 500
                if not retryable or retries >= self.max_retries:
                    raise ExamApiError(f"API error: {status} {response.reason}")

                retry_after = response.headers.get("Retry-After")
                if retry_after and retry_after.strip().isdigit():
                    delay = float(retry_after)
                logger.warning(
                    f"Retry {retries + 1}/{self.max_retries} after {delay:.1f}s: HTTP {status}"
                )

            time.sleep(delay)
            retries += 1
            delay *= 2

    def parse_appointments(self, raw_items: Any) -> List[Appointment]:
        """
        Keep items of the configured exam type and map them to appointments

        Args:
            raw_items: Raw exam items as returned by fetch_exam_data

        Returns:
            List of Appointment objects in API order
        """
        if not isinstance(raw_items, list):
            logger.warning("Exam data is not a list, nothing to parse")
            return []

        appointments = []
        for item in raw_items:
            try:
                if str(item["examType"]["id"]) != str(self.exam_type_id):
                    continue

                item_id = item["id"]
                if item_id is None:
                    raise ValueError("missing id")

                area = item["contactInfo"]["area"]
                appointments.append(Appointment(
                    id=item_id,
                    termin=format_termin(item["date"], self.timezone),
                    pruefungsstelle=item["examinationOffice"]["name"] or "",
                    pruefungsort=area["name"] or "",
                    landkreis=area.get("districtName") or "",
                    url=f"{self.link_url}{item_id}"
                ))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed exam item: {e!r}")

        logger.info(
            f"Parsed {len(appointments)} appointments of exam type {self.exam_type_id} "
            f"from {len(raw_items)} items"
        )
        return appointments
