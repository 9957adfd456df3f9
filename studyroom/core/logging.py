import logging
from typing import Optional

from studyroom.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the project-wide log format and level to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled separately; keep the engine quiet by default
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
