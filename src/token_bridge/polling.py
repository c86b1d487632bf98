"""Fixed-delay status polling shared by the message trackers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import FinalizationTimeout
from .types import MessageStatus

logger = logging.getLogger(__name__)


@dataclass
class PollReport:
    """Outcome of a completed poll."""

    status: MessageStatus
    reads: int
    sleeps: int
    waited: float


def poll_until_status(
    read_status: Callable[[], MessageStatus],
    target: MessageStatus,
    *,
    delay: float,
    on_wait: Callable[[MessageStatus], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    timeout: float | None = None,
) -> PollReport:
    """Read a status until it reaches ``target``.

    Every iteration performs exactly one read. Between reads ``on_wait`` is
    invoked and the loop sleeps for ``delay`` seconds, or for whatever is left
    of ``timeout`` when that is shorter so a final read lands on the deadline.
    Errors raised by ``read_status`` propagate and end the loop. With
    ``timeout=None`` there is no deadline.
    """
    if delay < 0:
        raise ValueError("Poll delay cannot be negative")

    started = clock()
    reads = 0
    sleeps = 0
    highest: MessageStatus | None = None

    while True:
        status = read_status()
        reads += 1

        if highest is not None and status < highest:
            logger.warning(
                "Status regressed from %s to %s on read %s; treating as a transient read",
                highest.name,
                status.name,
                reads,
            )
        else:
            highest = status
            if status.has_reached(target):
                return PollReport(
                    status=status, reads=reads, sleeps=sleeps, waited=clock() - started
                )

        pause = delay
        if timeout is not None:
            waited = clock() - started
            remaining = timeout - waited
            if remaining <= 0:
                raise FinalizationTimeout(
                    f"Status did not reach {target.name} within {timeout:.0f} seconds",
                    waited=waited,
                    last_status=highest,
                )
            # The last pause is shortened so one more read lands on the deadline.
            pause = min(delay, remaining)

        if on_wait is not None:
            on_wait(status)
        logger.debug("Status is %s, retrying in %.1f seconds", status.name, pause)
        sleep(pause)
        sleeps += 1
