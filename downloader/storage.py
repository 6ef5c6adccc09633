"""
Markdown file storage for extracted articles.
"""
from pathlib import Path
from typing import Set

import aiofiles
import structlog

from downloader.config import CollisionPolicy
from downloader.errors import PersistError
from downloader.models.article import OutputArtifact

# Set up structured logger
logger = structlog.get_logger()


class ArtifactWriter:
    """
    Writes article files into one output directory.

    Name collisions are tracked per writer, i.e. per batch: files left by an
    earlier run are overwritten, while two articles of the same batch that
    share a title are resolved according to the collision policy.
    """

    def __init__(self, output_dir: Path, policy: CollisionPolicy = CollisionPolicy.SUFFIX):
        self.output_dir = Path(output_dir)
        self.policy = policy
        self._written: Set[Path] = set()

    def resolve_path(self, path: Path) -> Path:
        """Apply the collision policy to a target path."""
        if path not in self._written or self.policy == CollisionPolicy.OVERWRITE:
            return path
        if self.policy == CollisionPolicy.FAIL:
            raise PersistError(str(path), "an article with the same title was already saved")

        counter = 2
        while True:
            candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
            if candidate not in self._written:
                return candidate
            counter += 1

    async def write(self, artifact: OutputArtifact) -> Path:
        """
        Write an artifact to disk.

        Returns:
            Path: Where the file was written

        Raises:
            PersistError: If the file cannot be written
        """
        path = self.resolve_path(artifact.path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(artifact.encode())
        except OSError as e:
            logger.error("Error writing article file", path=str(path), error=str(e))
            raise PersistError(str(path), str(e)) from e

        self._written.add(path)
        logger.debug("Article file written", path=str(path), bytes=len(artifact.body))
        return path
