import logging
import time


def now_ts() -> float:
    return time.time()


class MonotonicClock:
    """Millisecond clock used for round timing; never goes backwards."""

    def now_ms(self) -> int:
        return int(time.monotonic() * 1000)


def configure_logging(level: str = "INFO") -> None:
    """Configure basic logging for the service."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
