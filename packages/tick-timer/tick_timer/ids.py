"""Timer id generation."""
from __future__ import annotations

import random
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LEN = 9

_rng = random.Random()


def generate_timer_id() -> str:
    """Return an id like ``timer-1729250000000-k3j9x0q1z``.

    Not guaranteed collision-free; the manager retries against its registry.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(_rng.choice(_ALPHABET) for _ in range(_SUFFIX_LEN))
    return f"timer-{millis}-{suffix}"
