"""
Host callbacks used by the evaluator.

The evaluator never touches the file system or the font system directly; it
asks an EvaluationDelegate. FileDelegate is the file-system implementation
used by the command line.
"""

import json
import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Sequence, TextIO

from ..errors import EvaluationError, FileTypeMismatch
from ...geometry import SCHEMA_ID, Geometry, GeometryType, Path as ShapePath

logger = logging.getLogger(__name__)


class EvaluationDelegate(ABC):
    """Interface between the evaluator and its host."""

    @abstractmethod
    def resolve_url(self, path: str) -> Path:
        """Map a path written in a program to a file location."""
        pass

    @abstractmethod
    def import_geometry(self, url: Path) -> Optional[Geometry]:
        """
        Load a geometry file. May raise OSError subclasses or a ScriptError;
        returning None means there is nothing to import.
        """
        pass

    @abstractmethod
    def debug_log(self, values: Sequence[Any]) -> None:
        """Receive the arguments of a `print` statement."""
        pass

    def font_names(self) -> Optional[List[str]]:
        """Available font names, or None to accept any font."""
        return None

    def text_paths(self, text: str, font: Optional[str], detail: int) -> List[ShapePath]:
        """Outline paths for a run of text. No text support by default."""
        return []


def format_debug_value(value: Any) -> str:
    """Render a value passed to `print` for display."""
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        return " ".join(format_debug_value(v) for v in value)
    if value is None:
        return "nil"
    return str(value)


class FileDelegate(EvaluationDelegate):
    """
    Resolves paths against a base directory and imports JSON geometry
    documents.

    Args:
        base_dir: Directory that relative paths are resolved against.
        output: Stream that debug output is written to.
        fonts: Optional font catalogue used to validate `font` names.
    """

    GEOMETRY_SUFFIXES = (".json",)

    def __init__(self, base_dir: Optional[Path] = None, output: Optional[TextIO] = None,
                 fonts: Optional[Sequence[str]] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.output = output if output is not None else sys.stdout
        self.fonts = list(fonts) if fonts is not None else None
        self.linked_resources: List[Path] = []

    def resolve_url(self, path: str) -> Path:
        url = Path(path)
        if not url.is_absolute():
            url = self.base_dir / url
        # A directory containing a file of the same name stands in for it
        if url.is_dir():
            candidate = url / url.name
            if candidate.exists():
                url = candidate
        if url not in self.linked_resources:
            self.linked_resources.append(url)
        logger.debug("resolved %r to %s", path, url)
        return url

    def import_geometry(self, url: Path) -> Optional[Geometry]:
        if url.suffix.lower() not in self.GEOMETRY_SUFFIXES:
            raise EvaluationError(FileTypeMismatch(url.name, url, None))
        logger.debug("importing geometry from %s", url)
        with open(url, "r", encoding="utf-8") as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON: {exc.msg}") from exc
        if not isinstance(document, dict):
            raise ValueError("Geometry document must be an object")
        if "schema" in document and document["schema"] != SCHEMA_ID:
            raise ValueError(f"Unsupported schema '{document['schema']}'")
        children = document.get("children")
        if children is None:
            return Geometry.from_dict(document)
        if not isinstance(children, list):
            raise ValueError("Geometry children must be a list")
        if not children:
            return None
        nodes = [Geometry.from_dict(child) for child in children]
        if len(nodes) == 1:
            return nodes[0]
        return Geometry(type=GeometryType.GROUP, children=tuple(nodes))

    def debug_log(self, values: Sequence[Any]) -> None:
        print(format_debug_value(list(values)), file=self.output)

    def font_names(self) -> Optional[List[str]]:
        return self.fonts
