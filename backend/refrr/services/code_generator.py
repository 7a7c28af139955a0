"""
Referral code generation
"""

import random
import string
from typing import Awaitable, Callable, Optional

import structlog

from refrr.core.config import settings
from refrr.core.exceptions import Unavailable

logger = structlog.get_logger()

CODE_ALPHABET = string.ascii_uppercase + string.digits

# Redraws allowed when the pre-check finds the code taken
MAX_DRAWS = 10


def draw_code(length: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """One uniformly random code over A-Z0-9"""
    length = length or settings.REFERRAL_CODE_LENGTH
    chooser = rng or random
    return "".join(chooser.choice(CODE_ALPHABET) for _ in range(length))


async def generate_unique_code(
    code_exists: Callable[[str], Awaitable[bool]],
    length: Optional[int] = None,
    rng: Optional[random.Random] = None,
    draw: Optional[Callable[[], str]] = None,
) -> str:
    """Draw codes until one is not already used.

    The whole code is redrawn on every collision. The result is only unique at
    the moment of the check; the unique constraint on insert stays the final word.
    """
    draw = draw or (lambda: draw_code(length, rng))
    for attempt in range(1, MAX_DRAWS + 1):
        code = draw()
        if not await code_exists(code):
            return code
        logger.info("Referral code collision, redrawing", attempt=attempt)

    logger.error("Could not draw a free referral code", attempts=MAX_DRAWS)
    raise Unavailable("Could not generate a referral code")
