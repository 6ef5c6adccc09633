"""
Article and OutputArtifact models.

An Article is the normalized record extracted from one rendered page; an
OutputArtifact is the Markdown file derived from it and its source URL.
"""
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from downloader.sanitize import sanitize_filename

ARTIFACT_SUFFIX = ".md"
UNTITLED_STEM = "untitled"


class Article(BaseModel):
    """
    Represents the content extracted from one article page.

    Metadata fields are empty strings when the page does not carry the
    corresponding node; that is not an error.
    """
    model_config = ConfigDict(frozen=True)

    title: str = ""
    author: str = ""
    content: str = ""  # Markdown
    date: str = ""

    def file_stem(self) -> str:
        """Sanitized title, or a fixed stem when nothing usable is left."""
        return sanitize_filename(self.title) or UNTITLED_STEM

    def render_markdown(self, source_url: str) -> str:
        """Render the article as the persisted Markdown document."""
        return (
            f"# {self.title}\n\n"
            f"> author: {self.author}\n"
            f"> source: {source_url}\n\n"
            f"{self.content}"
        )


class OutputArtifact(BaseModel):
    """A Markdown file ready to be written exactly once."""
    model_config = ConfigDict(frozen=True)

    path: Path
    body: str
    source_url: Optional[str] = None

    @classmethod
    def from_article(cls, article: Article, source_url: str, output_dir: Path) -> "OutputArtifact":
        """Derive the artifact for an article; the path depends only on the title."""
        return cls(
            path=Path(output_dir) / f"{article.file_stem()}{ARTIFACT_SUFFIX}",
            body=article.render_markdown(source_url),
            source_url=source_url,
        )

    def encode(self) -> bytes:
        return self.body.encode("utf-8")
