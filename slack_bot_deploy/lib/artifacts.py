"""Staging of the compiled bot binary."""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class ArtifactError(Exception):
    """Build artifact is missing or cannot be staged."""

    pass


def stage_bootstrap(built_binary: Path, bootstrap: Path) -> Path:
    """
    Copy the built binary to the Lambda custom runtime entrypoint.

    The copy keeps the executable bit, since Lambda runs `bootstrap`
    directly.

    Args:
        built_binary: Path to the cargo release output
        bootstrap: Destination path, normally target/bootstrap

    Returns:
        The bootstrap path.
    """
    if not built_binary.is_file():
        raise ArtifactError(f"Built binary not found: {built_binary}")

    bootstrap.parent.mkdir(parents=True, exist_ok=True)
    try:
        shutil.copy2(built_binary, bootstrap)
    except OSError as e:
        raise ArtifactError(f"Could not copy {built_binary} to {bootstrap}: {e}") from e

    logger.debug("Staged %s -> %s", built_binary, bootstrap)
    return bootstrap
