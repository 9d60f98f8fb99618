import random
import string
import time
from typing import Callable

from constants import ROOM_CODE_PREFIX, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, ROOM_CODE_MAX_ATTEMPTS
from logging_config import get_logger

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_room_code() -> str:
    return ROOM_CODE_PREFIX + ''.join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


def generate_participant_id() -> str:
    """Millisecond timestamp in base36 followed by 5 random base36 chars.

    Ids sort roughly by creation time. No collision check is made.
    """
    prefix = _to_base36(int(time.time() * 1000))
    return prefix + ''.join(random.choices(_BASE36, k=5))


def allocate_room_code(exists: Callable[[str], bool], max_attempts: int = ROOM_CODE_MAX_ATTEMPTS) -> str:
    """Draw codes until one is unused or max_attempts is reached.

    Uniqueness is best-effort: after the last attempt the code is returned
    even if it is still taken.
    """
    code = generate_room_code()
    attempts = 1
    while exists(code) and attempts < max_attempts:
        code = generate_room_code()
        attempts += 1
    if exists(code):
        logger.warning(f"Room code {code} still in use after {attempts} attempts, accepting collision")
    return code
