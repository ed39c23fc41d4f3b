"""File loaders producing `SourceDocument`s for ingestion."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from assistant_kit.types import SourceDocument


class Loader(ABC):
    """Base loader interface used by the ingest pipeline."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def load(self, path: Path, *, doc_id: str | None = None) -> SourceDocument:
        """Read a file into normalized text + metadata."""


class TextLoader(Loader):
    """Loader for plain text and markdown documents."""

    extensions = (".txt", ".log", ".md", ".markdown")

    def load(self, path: Path, *, doc_id: str | None = None) -> SourceDocument:
        return SourceDocument(
            doc_id=doc_id or path.stem,
            text=path.read_text(encoding="utf-8"),
            metadata={"source": str(path), "format": path.suffix.lstrip(".").lower()},
        )


class JsonLoader(Loader):
    """Loader for JSON documents with deterministic normalization."""

    extensions = (".json",)

    def load(self, path: Path, *, doc_id: str | None = None) -> SourceDocument:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(payload, (dict, list)):
            text = json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2)
        else:
            text = str(payload)
        return SourceDocument(
            doc_id=doc_id or path.stem,
            text=text,
            metadata={"source": str(path), "format": "json"},
        )


class LoaderRegistry:
    """Maps file extension to loader implementation."""

    def __init__(self, loaders: list[Loader] | None = None) -> None:
        self._loaders: dict[str, Loader] = {}
        for loader in loaders or [TextLoader(), JsonLoader()]:
            self.register(loader)

    def register(self, loader: Loader) -> None:
        for extension in loader.extensions:
            self._loaders[extension.lower()] = loader

    def load_path(self, path: str | Path, *, doc_id: str | None = None) -> SourceDocument:
        file_path = Path(path)
        loader = self._loaders.get(file_path.suffix.lower())
        if loader is None:
            raise ValueError(f"No loader registered for extension: {file_path.suffix}")
        return loader.load(file_path, doc_id=doc_id)

    def load_directory(self, directory: str | Path) -> Iterator[SourceDocument]:
        """Load every supported file under `directory`, in path order.

        Document ids are the paths relative to `directory`, so same-named
        files in different folders stay separate documents.
        """

        root = Path(directory)
        for file_path in sorted(root.rglob("*")):
            if file_path.is_file() and file_path.suffix.lower() in self._loaders:
                yield self.load_path(file_path, doc_id=file_path.relative_to(root).as_posix())
