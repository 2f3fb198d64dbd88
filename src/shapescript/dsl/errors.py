"""
ShapeScript exceptions and diagnostics.

Every error raised while evaluating a program is a ScriptError exposing a
human-readable `message`, an optional `hint` and `suggestion`, and the
SourceRange of the offending text. Runtime errors carry a RuntimeErrorType
describing what went wrong; the message and hint are derived from it.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .ast import KEYWORDS, SourceLocation, SourceRange, source_line
from .suggestions import best_matches, suggest
from .types import ORDINALS


class ScriptError(Exception):
    """Base exception for ShapeScript errors."""

    @property
    def message(self) -> str:
        raise NotImplementedError

    @property
    def hint(self) -> Optional[str]:
        return None

    @property
    def suggestion(self) -> Optional[str]:
        return None

    @property
    def range(self) -> Optional[SourceRange]:
        return None

    def __str__(self) -> str:
        return self.message

    def format(self, source: Optional[str] = None, filename: Optional[str] = None) -> str:
        """Format the error for display, pointing into source when given."""
        parts = []
        rng = self.range
        if source is not None and rng is not None:
            start = SourceLocation.of(source, rng.start, filename)
            end = SourceLocation.of(source, rng.end, filename)
            parts.append(f"{start}: error: {self.message}")
            line = source_line(source, start.line)
            if line is not None:
                parts.append("  |")
                parts.append(f"{start.line:>3} | {line}")
                end_col = end.column if start.line == end.line else len(line) + 1
                underline_len = max(1, end_col - start.column)
                parts.append(f"    | {' ' * (start.column - 1)}{'^' * underline_len}")
        else:
            parts.append(f"error: {self.message}")
        if self.hint:
            parts.append(f"    = hint: {self.hint}")
        return "\n".join(parts)

    def to_json(self, source: Optional[str] = None) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "type": type(self).__name__,
            "message": self.message,
            "hint": self.hint,
            "suggestion": self.suggestion,
            "range": None,
        }
        rng = self.range
        if rng is not None:
            result["range"] = {"start": rng.start, "end": rng.end}
            if source is not None:
                for key, offset in (("start", rng.start), ("end", rng.end)):
                    loc = SourceLocation.of(source, offset)
                    result["range"][key] = {
                        "line": loc.line,
                        "column": loc.column,
                        "offset": loc.offset,
                    }
        return result


class _SyntaxError(ScriptError):
    """Errors reported by an external lexer or parser."""

    def __init__(self, message: str, range: SourceRange, hint: Optional[str] = None):
        super().__init__(message)
        self._message = message
        self._range = range
        self._hint = hint

    @property
    def message(self) -> str:
        return self._message

    @property
    def hint(self) -> Optional[str]:
        return self._hint

    @property
    def range(self) -> SourceRange:
        return self._range


class LexerError(_SyntaxError):
    """Error during lexical analysis."""
    pass


class ParserError(_SyntaxError):
    """Error during parsing."""
    pass


# =============================================================================
# Runtime error kinds
# =============================================================================

def _nth(index: int) -> str:
    if 1 <= index < len(ORDINALS):
        return f"{ORDINALS[index]} "
    return ""


def _format_message(message: str) -> Optional[str]:
    if not message:
        return None
    if message[-1] in ".?!":
        return message
    return f"{message}."


def _is_standard_symbol(name: str) -> bool:
    from .runtime.builtins import all_symbol_names
    return name in KEYWORDS or name in all_symbol_names()


@dataclass(frozen=True)
class RuntimeErrorType:
    """Base class for the kinds of runtime error."""

    @property
    def message(self) -> str:
        raise NotImplementedError

    @property
    def suggestion(self) -> Optional[str]:
        return None

    @property
    def hint(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class UnknownSymbol(RuntimeErrorType):
    name: str
    options: List[str]

    @property
    def message(self) -> str:
        if _is_standard_symbol(self.name):
            return f"Unexpected symbol '{self.name}'"
        return f"Unknown symbol '{self.name}'"

    @property
    def suggestion(self) -> Optional[str]:
        return suggest(self.name, self.options)

    @property
    def hint(self) -> Optional[str]:
        hint = ""
        if _is_standard_symbol(self.name):
            hint = f"The {self.name} command is not available in this context."
        if self.suggestion is not None:
            hint = (f"{hint} " if hint else "") + f"Did you mean '{self.suggestion}'?"
        return hint or None


@dataclass(frozen=True)
class UnknownMember(RuntimeErrorType):
    name: str
    of: str
    options: List[str]

    @property
    def message(self) -> str:
        return f"Unknown {self.of} member property '{self.name}'"

    @property
    def suggestion(self) -> Optional[str]:
        return suggest(self.name, self.options)

    @property
    def hint(self) -> Optional[str]:
        if self.suggestion is None:
            return None
        return f"Did you mean '{self.suggestion}'?"


@dataclass(frozen=True)
class UnknownFont(RuntimeErrorType):
    name: str
    options: List[str]

    @property
    def message(self) -> str:
        return f"Unknown font '{self.name}'"

    @property
    def suggestion(self) -> Optional[str]:
        matches = best_matches(self.name, self.options)
        return matches[0] if matches else None

    @property
    def hint(self) -> Optional[str]:
        if self.suggestion is None:
            return None
        return f"Did you mean '{self.suggestion}'?"


@dataclass(frozen=True)
class TypeMismatch(RuntimeErrorType):
    for_name: str
    index: int
    expected: str
    got: str

    @property
    def message(self) -> str:
        return "Type mismatch"

    @property
    def hint(self) -> Optional[str]:
        got = self.got if "," in self.got else f"a {self.got}"
        return (f"The {_nth(self.index)}argument for {self.for_name} "
                f"should be a {self.expected}, not {got}.")


@dataclass(frozen=True)
class UnexpectedArgument(RuntimeErrorType):
    for_name: str
    max: int

    @property
    def message(self) -> str:
        return "Unexpected argument"

    @property
    def hint(self) -> Optional[str]:
        if self.max == 0:
            return f"The {self.for_name} command does not expect any arguments."
        if self.max == 1:
            return f"The {self.for_name} command expects only a single argument."
        return f"The {self.for_name} command expects a maximum of {self.max} arguments."


@dataclass(frozen=True)
class MissingArgument(RuntimeErrorType):
    for_name: str
    index: int
    type: str

    @property
    def message(self) -> str:
        return "Missing argument"

    @property
    def hint(self) -> Optional[str]:
        type_name = "number" if self.type == "pair" else self.type
        if self.index == 0:
            return f"The {self.for_name} command expects an argument of type {type_name}."
        return (f"The {self.for_name} command expects a {_nth(self.index)}"
                f"argument of type {type_name}.")


@dataclass(frozen=True)
class UnusedValue(RuntimeErrorType):
    type: str

    @property
    def message(self) -> str:
        return "Unused value"

    @property
    def hint(self) -> Optional[str]:
        return f"A {self.type} value was not expected in this context."


@dataclass(frozen=True)
class AssertionFailure(RuntimeErrorType):
    text: str

    @property
    def message(self) -> str:
        return "Assertion failure"

    @property
    def hint(self) -> Optional[str]:
        return _format_message(self.text)


@dataclass(frozen=True)
class FileNotFound(RuntimeErrorType):
    for_name: str
    at: Optional[Path] = None

    @property
    def message(self) -> str:
        if not self.for_name:
            return "Empty file name"
        return f"File '{self.for_name}' not found"

    @property
    def hint(self) -> Optional[str]:
        if self.at is None:
            return None
        return (f"ShapeScript expected to find the file at '{self.at}'. "
                "Check that it exists and is located here.")


@dataclass(frozen=True)
class FileAccessRestricted(RuntimeErrorType):
    for_name: str
    at: Path

    @property
    def message(self) -> str:
        return f"Unable to access file '{self.for_name}'"

    @property
    def hint(self) -> Optional[str]:
        return (f"ShapeScript cannot read the file at '{self.at}'. "
                "Check the permissions of the file and its directory.")


@dataclass(frozen=True)
class FileTypeMismatch(RuntimeErrorType):
    for_name: str
    at: Path
    expected: Optional[str] = None

    @property
    def message(self) -> str:
        return f"Unable to open file '{self.for_name}'"

    @property
    def hint(self) -> Optional[str]:
        if self.expected is None:
            return f"The type of file at '{self.at}' is not supported."
        return f"The file at '{self.at}' is not a {self.expected} file."


@dataclass(frozen=True)
class FileParsingError(RuntimeErrorType):
    for_name: str
    at: Path
    text: str

    @property
    def message(self) -> str:
        return f"Unable to open file '{self.for_name}'"

    @property
    def hint(self) -> Optional[str]:
        return _format_message(self.text)


@dataclass(frozen=True)
class ImportedFileError(RuntimeErrorType):
    """An error raised while evaluating another file."""
    error: "ImportFailure"
    for_name: str
    in_source: str

    @property
    def message(self) -> str:
        inner = self.error.error
        if isinstance(inner, EvaluationError) and isinstance(inner.type, ImportedFileError):
            return inner.message
        return f"Error in imported file '{self.for_name}': {self.error.message}"

    @property
    def hint(self) -> Optional[str]:
        return self.error.hint


# =============================================================================
# Exceptions
# =============================================================================

class EvaluationError(ScriptError):
    """
    A runtime error. Errors raised by builtins start out without a range;
    the evaluator fills it in with the invoking statement or expression.
    """

    def __init__(self, type: RuntimeErrorType, range: Optional[SourceRange] = None):
        super().__init__(type)
        self.type = type
        self._range = range

    @property
    def message(self) -> str:
        return self.type.message

    @property
    def hint(self) -> Optional[str]:
        return self.type.hint

    @property
    def suggestion(self) -> Optional[str]:
        return self.type.suggestion

    @property
    def range(self) -> Optional[SourceRange]:
        return self._range

    @range.setter
    def range(self, value: Optional[SourceRange]) -> None:
        self._range = value

    def __repr__(self) -> str:
        return f"EvaluationError({self.type!r}, {self._range!r})"


@contextmanager
def at_range(range: SourceRange) -> Iterator[None]:
    """Attach range to any EvaluationError raised without one."""
    try:
        yield
    except EvaluationError as error:
        if error.range is None:
            error.range = range
        raise


@dataclass(frozen=True, eq=False)
class ImportFailure:
    """A lexer, parser, runtime or other error from a nested evaluation."""
    error: Exception

    @property
    def kind(self) -> str:
        if isinstance(self.error, LexerError):
            return "lexer"
        if isinstance(self.error, ParserError):
            return "parser"
        if isinstance(self.error, EvaluationError):
            return "runtime"
        return "unknown"

    @property
    def message(self) -> str:
        if isinstance(self.error, ScriptError):
            return self.error.message
        return "Unknown error"

    @property
    def hint(self) -> Optional[str]:
        if isinstance(self.error, ScriptError):
            return self.error.hint
        return None

    @property
    def range(self) -> Optional[SourceRange]:
        if isinstance(self.error, ScriptError):
            return self.error.range
        return None
