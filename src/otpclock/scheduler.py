import enum
import logging
import threading
import time
from typing import Any, Callable, NamedTuple, Optional, Tuple

from .config import (
    DEFAULT_ALGORITHM,
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    Result,
    TotpConfig,
    config_from_bytes,
    validate_secret,
)
from .exceptions import OtpError
from .totp import remaining_seconds, timecode, totp

logger = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


class Update(NamedTuple):
    """
    What the display gets once per tick.

    ``code`` is None when no valid code can be computed, in which case the
    display should prompt for input instead of showing an old code.
    ``rolled_over`` is True on the first update sent in a new window, even
    when the tick for its first second was missed.
    """

    code: Optional[str]
    remaining_seconds: int
    rolled_over: bool = False


NO_CODE = Update(None, 0)


class RefreshScheduler(object):
    """
    Recomputes the current TOTP code once per second and pushes it to an observer.

    The scheduler is IDLE until :meth:`configure` is given valid input, and
    goes back to IDLE as soon as the input becomes invalid or is cleared.
    While ACTIVE a background thread calls :meth:`tick` every ``interval``
    seconds. Call :meth:`close` (or use the scheduler as a context manager)
    to stop it; the observer is never called after close returns.

    :param observer: called with an :class:`Update` on every tick
    :param clock: returns the current Unix time, defaults to ``time.time``
    :param interval: seconds between ticks
    """

    def __init__(
        self,
        observer: Callable[[Update], Any],
        clock: Callable[[], float] = time.time,
        interval: float = 1.0,
    ) -> None:
        self.observer = observer
        self.clock = clock
        self.interval = interval

        self._lock = threading.RLock()
        self._config: Optional[TotpConfig] = None
        self._secret_text: Optional[str] = None
        self._secret_result: Optional[Result[bytes]] = None
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        # counter of the last update sent for the current config, only used
        # to flag window changes
        self._last_counter: Optional[Tuple[TotpConfig, int]] = None

    def __enter__(self) -> "RefreshScheduler":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def state(self) -> State:
        return State.IDLE if self._config is None else State.ACTIVE

    @property
    def config(self) -> Optional[TotpConfig]:
        return self._config

    def configure(
        self,
        secret: str,
        digits: Any = DEFAULT_DIGITS,
        period: Any = DEFAULT_PERIOD,
        algorithm: Any = DEFAULT_ALGORITHM,
    ) -> Result[TotpConfig]:
        """
        Takes a new set of form values.

        The base32 secret is only decoded again when its text changed since
        the last call. Valid input activates the scheduler, invalid input
        sends it back to IDLE.

        :returns: the validation result, so the caller can show field errors
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("scheduler is closed")

            if secret != self._secret_text or self._secret_result is None:
                self._secret_text = secret
                self._secret_result = validate_secret(secret)

            if self._secret_result.ok:
                result = config_from_bytes(self._secret_result.unwrap(), digits, period, algorithm)
            else:
                result = Result.failure(self._secret_result.error)  # type: ignore

            if result.ok:
                self._activate(result.unwrap())
            else:
                logger.debug("Rejected TOTP input: %s", result.error)
                self._deactivate()
        return result

    def clear(self) -> None:
        self.configure("")

    def current(self) -> Update:
        """
        The code and countdown for this instant, without notifying anyone.
        """
        return self._compute(self._config)[0]

    def tick(self) -> Update:
        """
        Computes the current update and pushes it to the observer.
        """
        with self._lock:
            if self._closed:
                return NO_CODE
            update, marker = self._compute(self._config)
            self._last_counter = marker
            self.observer(update)
            return update

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._config = None
            self._last_counter = None
            thread = self._stop_ticking()
        self._join(thread)

    def _compute(self, config: Optional[TotpConfig]) -> Tuple[Update, Optional[Tuple[TotpConfig, int]]]:
        # one snapshot per computation, a concurrent configure() replaces the
        # whole config and never mutates this one
        if config is None:
            return NO_CODE, None
        now = self.clock()
        try:
            code = totp(config, now)
            counter = timecode(config.period, now)
            remaining = remaining_seconds(config.period, now)
        except OtpError as e:
            logger.debug("No TOTP code available: %s: %s", type(e).__name__, e)
            return NO_CODE, None

        last = self._last_counter
        if last is not None and last[0] is config:
            rolled_over = counter != last[1]
        else:
            rolled_over = remaining == config.period
        return Update(code, remaining, rolled_over), (config, counter)

    def _activate(self, config: TotpConfig) -> None:
        was_idle = self._config is None
        self._config = config
        if was_idle:
            logger.debug("Scheduler active: %r", config)
        self.tick()
        if self._thread is None:
            self._start_ticking()

    def _deactivate(self) -> None:
        was_active = self._config is not None
        self._config = None
        # not joined: a cancelled ticker never delivers, it just exits on wake-up
        self._stop_ticking()
        if was_active:
            logger.debug("Scheduler idle")
        self.tick()

    def _start_ticking(self) -> None:
        cancel = threading.Event()
        thread = threading.Thread(target=self._run, args=(cancel,), name="otpclock-refresh", daemon=True)
        self._cancel = cancel
        self._thread = thread
        thread.start()

    def _stop_ticking(self) -> Optional[threading.Thread]:
        thread = self._thread
        if self._cancel is not None:
            self._cancel.set()
        self._cancel = None
        self._thread = None
        return thread

    def _join(self, thread: Optional[threading.Thread]) -> None:
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _next_delay(self) -> float:
        # wake on whole multiples of the interval so no second is skipped
        return self.interval - self.clock() % self.interval

    def _run(self, cancel: threading.Event) -> None:
        while not cancel.wait(self._next_delay()):
            with self._lock:
                # checked under the lock: a stop that raced this wake-up wins
                if cancel.is_set():
                    return
                self.tick()
