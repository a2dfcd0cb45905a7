import random
import threading
import uuid
from uuid import UUID

# Fixed per process; passing an explicit clock sequence keeps uuid1() on the
# pure-Python path, which never repeats or decreases a timestamp.
_CLOCK_SEQ = random.getrandbits(14)
_lock = threading.Lock()


def time_ordered_id() -> UUID:
    """
    Returns a new time-based (version 1) UUID.

    Successive calls within one process carry strictly increasing timestamps,
    so sorting by id_sort_key() reproduces generation order.
    """
    with _lock:
        return uuid.uuid1(clock_seq=_CLOCK_SEQ)


def id_sort_key(value: UUID | str) -> int:
    """
    Returns the 60-bit timestamp embedded in a version 1 UUID.

    The textual form of a v1 UUID starts with the low time bits, so plain string
    comparison does not follow generation order; compare this value instead.

    Raises:
        ValueError: If value is not a version 1 UUID
    """
    parsed = value if isinstance(value, UUID) else UUID(str(value))
    if parsed.version != 1:
        raise ValueError(f"{value!s} is not a time-based UUID")
    return parsed.time
