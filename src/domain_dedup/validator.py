import string
import logging
from typing import Optional

logger = logging.getLogger(__name__)


# every character a domain candidate may consist of
ALLOWED_CHARACTERS = frozenset(
    string.ascii_letters + string.digits + "_" + "äüöÄÖÜß" + ".-*"
)


def validate_domain(raw: str) -> Optional[str]:
    """
    Validates a raw domain candidate and returns the usable version of it.

    A single trailing "/" is stripped, anything else is kept as it is
    (no case folding, no idna encoding).

    Returns:
        the accepted domain, or None if the candidate is rejected
    """
    domain = raw
    if domain.endswith("/"):
        domain = domain[:-1]

    if not domain:
        return None

    for char in domain:
        if char not in ALLOWED_CHARACTERS:
            logger.debug(f"Disallowed character {char!r} in {raw!r}")
            return None

    return domain
