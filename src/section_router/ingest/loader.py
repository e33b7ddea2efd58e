"""Loaders that read review documents from disk."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class SourceDocument:
    """A document read from disk, before section extraction."""

    path: str
    text: str
    format: str


class Loader(ABC):
    """Base loader interface keyed by file extension."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def load(self, path: Path) -> SourceDocument:
        """Read a file into normalized text."""


class MarkdownLoader(Loader):
    """Loader for markdown documents."""

    extensions = (".md", ".markdown")

    def load(self, path: Path) -> SourceDocument:
        return SourceDocument(
            path=str(path),
            text=path.read_text(encoding="utf-8"),
            format="markdown",
        )


class TextLoader(Loader):
    """Loader for plain text documents.

    Plain text is split with the same heading rules as markdown, so design
    notes kept as `.txt` still produce sections.
    """

    extensions = (".txt",)

    def load(self, path: Path) -> SourceDocument:
        return SourceDocument(
            path=str(path),
            text=path.read_text(encoding="utf-8"),
            format="text",
        )


class LoaderRegistry:
    """Maps file extension to loader implementation."""

    def __init__(self, loaders: list[Loader] | None = None) -> None:
        self._loaders: dict[str, Loader] = {}
        for loader in loaders or [MarkdownLoader(), TextLoader()]:
            self.register(loader)

    def register(self, loader: Loader) -> None:
        for extension in loader.extensions:
            self._loaders[extension.lower()] = loader

    def load_path(self, path: str | Path) -> SourceDocument:
        file_path = Path(path)
        loader = self._loaders.get(file_path.suffix.lower())
        if loader is None:
            raise ValueError(f"No loader registered for extension: {file_path.suffix}")
        return loader.load(file_path)
