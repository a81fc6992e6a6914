"""
Row key stamps for append-only records.

Deployment, resource and endpoint rows are keyed by a creation stamp. A bare
epoch-millisecond value collides when two writes land in the same
millisecond, so a stamp is built from three parts:

    <13-digit epoch millis><4-digit sequence><8 hex random chars>

- The sequence increments while the clock stays in the same millisecond and
  resets when it moves on, so stamps issued by one generator are strictly
  increasing in lexicographic order.
- If the clock goes backwards the generator keeps issuing stamps under the
  last millisecond it saw.
- The random tail keeps stamps from separate processes apart.
"""

import secrets
import threading
import time
from typing import Callable, Optional

MILLIS_WIDTH = 13
SEQUENCE_WIDTH = 4
RANDOM_HEX_CHARS = 8
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1


def _wall_clock_millis() -> int:
    return time.time_ns() // 1_000_000


class RowKeyGenerator:
    """Thread-safe generator of sortable, collision-resistant stamps."""

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        random_hex: Optional[Callable[[int], str]] = None
    ):
        """Initialize the generator.

        Args:
            clock: Returns the current epoch time in milliseconds
            random_hex: Returns a random hex string for a byte count
        """
        self._clock = clock or _wall_clock_millis
        self._random_hex = random_hex or secrets.token_hex
        self._lock = threading.Lock()
        self._last_millis = -1
        self._sequence = 0

    def next_stamp(self) -> str:
        """Return the next stamp."""
        with self._lock:
            millis = self._clock()
            if millis > self._last_millis:
                self._last_millis = millis
                self._sequence = 0
            else:
                self._sequence += 1
                if self._sequence > MAX_SEQUENCE:
                    # Sequence space for this millisecond is used up
                    self._last_millis += 1
                    self._sequence = 0
            millis, sequence = self._last_millis, self._sequence

        return (
            f"{millis:0{MILLIS_WIDTH}d}"
            f"{sequence:0{SEQUENCE_WIDTH}d}"
            f"{self._random_hex(RANDOM_HEX_CHARS // 2)}"
        )


def stamp_millis(stamp: str) -> int:
    """Extract the epoch-millisecond component of a stamp."""
    return int(stamp[:MILLIS_WIDTH])


def deployment_row_key(stamp: str, environment_id: str) -> str:
    return f"{stamp}_{environment_id}"


def resource_row_key(resource_type: str, stamp: str) -> str:
    return f"{resource_type}_{stamp}"


def endpoint_row_key(service_type: str, stamp: str) -> str:
    return f"{service_type}_{stamp}"
