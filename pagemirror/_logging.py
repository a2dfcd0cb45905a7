import hashlib
import logging
from typing import Any

# Create the library logger
logger = logging.getLogger("pagemirror")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_key(key: Any) -> str:
    """
    Redacts cursors and item identifiers for logging.
    Hashes the values so log lines can be correlated without revealing tokens.
    """
    if key is None:
        return "<none>"
    try:
        return hashlib.sha256(str(key).encode("utf-8")).hexdigest()[:8]
    except Exception:
        return "<redaction_failed>"
