import random
import string
from datetime import datetime

CODE_PREFIX = "R"
_CODE_CHARS = string.ascii_uppercase + string.digits


def generate_reservation_code(now: datetime) -> str:
    """Build an 'R<millis><6 chars>' reference, e.g. R1772438400000K3ZQ9A."""
    millis = int(now.timestamp() * 1000)
    return CODE_PREFIX + str(millis) + "".join(random.choices(_CODE_CHARS, k=6))
