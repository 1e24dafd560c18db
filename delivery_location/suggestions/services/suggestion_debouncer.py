import asyncio
import logging
from typing import Callable, List, Optional

from delivery_location.config.settings import settings
from delivery_location.core.domain.location_errors import GeocodeUnavailable, LocationError
from delivery_location.core.domain.status_event import Operation, StatusEvent, StatusKind
from delivery_location.core.interfaces.status_sink import NullStatusSink, StatusSink
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.interfaces.geocoding_client import GeocodingClient

logger = logging.getLogger(__name__)

CandidatesHandler = Callable[[List[SearchCandidate]], None]
ErrorHandler = Callable[[LocationError], None]


class SuggestionDebouncer:
    """
    Collapses keystrokes into at most one forward search per quiet period.

    Every on_input() bumps a sequence number. A search response is applied
    only if no newer input arrived while it was in flight (latest wins), and
    never after dispose().
    """

    def __init__(
            self,
            geocoder: GeocodingClient,
            on_candidates: Optional[CandidatesHandler] = None,
            on_error: Optional[ErrorHandler] = None,
            quiet_interval_ms: Optional[int] = None,
            region_bias: Optional[str] = None,
            status_sink: Optional[StatusSink] = None,
    ):
        self.geocoder = geocoder
        self.on_candidates = on_candidates
        self.on_error = on_error
        interval = quiet_interval_ms if quiet_interval_ms is not None else settings.SUGGESTION_QUIET_INTERVAL_MS
        self.quiet_interval_s = interval / 1000.0
        self.region_bias = region_bias if region_bias is not None else settings.DEFAULT_REGION
        self.status_sink = status_sink or NullStatusSink()

        self.candidates: List[SearchCandidate] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._sequence = 0
        self._disposed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def on_input(self, text: str) -> None:
        if self._disposed:
            return
        self._cancel_timer()
        self._sequence += 1

        if not text or not text.strip():
            self._publish([])
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.quiet_interval_s, self._fire, text, self._sequence)

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_timer()

    async def wait_idle(self) -> None:
        """Waits for the in-flight search, if any. Used by callers that tear down."""
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.gather(self._in_flight, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, text: str, sequence: int) -> None:
        self._timer = None
        self._in_flight = asyncio.ensure_future(self._search(text, sequence))

    async def _search(self, text: str, sequence: int) -> None:
        try:
            candidates = await self.geocoder.forward_search(text, self.region_bias)
        except LocationError as e:
            logger.warning(f"Place search failed for '{text}': {e}")
            self._fail(e, sequence)
            return
        except Exception as e:
            logger.exception(f"Unexpected place search error for '{text}'")
            self._fail(GeocodeUnavailable(f"{type(e).__name__}: {e}"), sequence)
            return

        if not self._is_current(sequence):
            logger.debug(f"Discarding stale suggestions for '{text}' (seq {sequence} < {self._sequence})")
            return
        self._publish(candidates)

    def _fail(self, error: LocationError, sequence: int) -> None:
        if not self._is_current(sequence):
            return
        self._publish([])
        self.status_sink.emit(StatusEvent(
            operation=Operation.PLACE_SEARCH,
            status=StatusKind.FAILURE,
            message="Failed to load location suggestions",
            error_code=error.code,
        ))
        if self.on_error:
            self.on_error(error)

    def _is_current(self, sequence: int) -> bool:
        return not self._disposed and sequence == self._sequence

    def _publish(self, candidates: List[SearchCandidate]) -> None:
        self.candidates = list(candidates)
        if self.on_candidates:
            self.on_candidates(self.candidates)
