"""
loguru sinks for fogchess.

Session and matchmaking records carry the player they belong to (`logger.bind(player=...)`);
everything else is logged with player "-".
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>{extra[player]}</magenta> "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} [{extra[player]}] {name}:{function} - {message}"


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: int = 5,
) -> None:
    """Replace all sinks with a colored stderr sink and, optionally, a rotating file.

    Args:
        level: Minimum log level for every sink.
        log_file: Optional path of the log file. Parent directories are created.
        rotation: Size or interval after which the file is rotated.
        retention: Number of rotated files to keep.
    """
    handlers: list[dict] = [
        {"sink": sys.stderr, "level": level, "format": CONSOLE_FORMAT, "colorize": True}
    ]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            {
                "sink": log_path,
                "level": level,
                "format": FILE_FORMAT,
                "rotation": rotation,
                "retention": retention,
            }
        )

    logger.configure(handlers=handlers, extra={"player": "-"})
    logger.debug(f"Logging configured at level {level}")
