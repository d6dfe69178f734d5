"""
Post-run OS shutdown request.

Failure to schedule a shutdown is reported, never raised: the render run
has already finished by the time this is called.
"""

import logging
import math
import subprocess
import sys
from typing import Callable, List

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_DELAY_SECONDS = 60


def shutdown_command(delay_seconds: int, platform: str = sys.platform) -> List[str]:
    """
    Build the platform shutdown command.

    Windows takes a delay in seconds; other platforms take whole minutes.
    """
    delay_seconds = max(int(delay_seconds), 0)
    if platform.startswith("win"):
        return ["shutdown", "/s", "/t", str(delay_seconds)]
    minutes = max(1, math.ceil(delay_seconds / 60))
    return ["shutdown", "-h", f"+{minutes}"]


def request_shutdown(
    delay_seconds: int = DEFAULT_SHUTDOWN_DELAY_SECONDS,
    runner: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> bool:
    """
    Ask the OS to shut down after ``delay_seconds``.

    Returns:
        True if the shutdown command was started, False otherwise
    """
    cmd = shutdown_command(delay_seconds)
    logger.info(f"[SHUTDOWN] Requesting shutdown: {' '.join(cmd)}")
    try:
        runner(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        logger.warning(f"[SHUTDOWN] Failed to schedule shutdown: {e}")
        return False
    return True
