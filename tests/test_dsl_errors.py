"""
Tests for error kinds, messages and formatted diagnostics.
"""

from pathlib import Path

import pytest

from shapescript.dsl.ast import SourceRange
from shapescript.dsl.errors import (
    AssertionFailure, EvaluationError, FileAccessRestricted, FileNotFound,
    FileParsingError, FileTypeMismatch, ImportedFileError, ImportFailure,
    LexerError, MissingArgument, ParserError, ScriptError, TypeMismatch,
    UnexpectedArgument, UnknownFont, UnknownMember, UnknownSymbol,
    UnusedValue, at_range,
)


class TestMessages:
    """Test messages and hints of each error kind."""

    def test_unknown_symbol(self):
        """Unknown names get a suggestion."""
        error = UnknownSymbol("qube", ["cube", "sphere"])
        assert error.message == "Unknown symbol 'qube'"
        assert error.suggestion == "cube"
        assert error.hint == "Did you mean 'cube'?"

    def test_unexpected_symbol(self):
        """Standard names used out of context are 'unexpected'."""
        error = UnknownSymbol("cube", [])
        assert error.message == "Unexpected symbol 'cube'"
        assert error.hint == "The cube command is not available in this context."

    def test_unknown_symbol_without_suggestion(self):
        error = UnknownSymbol("xyzzy", ["sphere"])
        assert error.suggestion is None
        assert error.hint is None

    def test_unknown_member(self):
        error = UnknownMember("wdth", "size", ["width", "height", "depth"])
        assert error.message == "Unknown size member property 'wdth'"
        assert error.hint == "Did you mean 'width'?"

    def test_unknown_font(self):
        error = UnknownFont("Helvetca", ["Helvetica", "Courier"])
        assert error.message == "Unknown font 'Helvetca'"
        assert error.suggestion == "Helvetica"

    def test_type_mismatch(self):
        """The first argument is not numbered; later ones are."""
        assert TypeMismatch("color", 0, "color", "string").hint == (
            "The argument for color should be a color, not a string.")
        assert TypeMismatch("+", 1, "number", "mesh").hint == (
            "The second argument for + should be a number, not a mesh.")

    def test_type_mismatch_list(self):
        """Lists of types are not given an article."""
        hint = TypeMismatch("color", 0, "color", "color, number").hint
        assert hint.endswith("not color, number.")

    def test_unexpected_argument(self):
        assert UnexpectedArgument("cube", 0).hint == (
            "The cube command does not expect any arguments.")
        assert UnexpectedArgument("name", 1).hint == (
            "The name command expects only a single argument.")
        assert UnexpectedArgument("color", 4).hint == (
            "The color command expects a maximum of 4 arguments.")

    def test_missing_argument(self):
        """Pair arguments are described as numbers."""
        assert MissingArgument("size", 0, "size").hint == (
            "The size command expects an argument of type size.")
        assert MissingArgument("pow", 1, "pair").hint == (
            "The pow command expects a second argument of type number.")

    def test_unused_value(self):
        assert UnusedValue("number").hint == (
            "A number value was not expected in this context.")

    def test_assertion_failure(self):
        """Messages are terminated with a period unless already punctuated."""
        assert AssertionFailure("boom").hint == "boom."
        assert AssertionFailure("done!").hint == "done!"
        assert AssertionFailure("").hint is None

    def test_file_errors(self):
        at = Path("/models/thing.json")
        assert FileNotFound("").message == "Empty file name"
        assert FileNotFound("thing.json", at).message == "File 'thing.json' not found"
        assert "/models/thing.json" in FileNotFound("thing.json", at).hint
        assert FileNotFound("thing.json").hint is None
        assert FileAccessRestricted("thing.json", at).message == (
            "Unable to access file 'thing.json'")
        assert FileTypeMismatch("thing.xyz", at).hint == (
            f"The type of file at '{at}' is not supported.")
        assert FileTypeMismatch("thing.xyz", at, "image").hint == (
            f"The file at '{at}' is not a image file.")
        assert FileParsingError("thing.json", at, "bad data").hint == "bad data."


class TestImportedFileError:
    """Test errors attributed to imported files."""

    def test_message(self):
        inner = EvaluationError(UnknownSymbol("qube", ["cube"]), SourceRange(0, 4))
        error = ImportedFileError(ImportFailure(inner), "lib.shape", "qube")
        assert error.message == "Error in imported file 'lib.shape': Unknown symbol 'qube'"
        assert error.hint == "Did you mean 'cube'?"

    def test_nested_message(self):
        """Nested imports report the innermost file."""
        inner = EvaluationError(AssertionFailure("x"), SourceRange(0, 1))
        middle = EvaluationError(ImportedFileError(ImportFailure(inner), "b.shape", ""))
        outer = ImportedFileError(ImportFailure(middle), "a.shape", "")
        assert outer.message == "Error in imported file 'b.shape': Assertion failure"

    def test_failure_kinds(self):
        rng = SourceRange(0, 1)
        assert ImportFailure(LexerError("bad token", rng)).kind == "lexer"
        assert ImportFailure(ParserError("unexpected", rng)).kind == "parser"
        assert ImportFailure(EvaluationError(UnusedValue("number"), rng)).kind == "runtime"
        unknown = ImportFailure(RuntimeError("?"))
        assert unknown.kind == "unknown"
        assert unknown.message == "Unknown error"
        assert unknown.range is None


class TestEvaluationError:
    """Test the runtime exception."""

    def test_is_script_error(self):
        error = EvaluationError(UnusedValue("number"))
        assert isinstance(error, ScriptError)
        assert str(error) == "Unused value"
        assert error.range is None

    def test_at_range_fills_missing(self):
        """at_range sets the range of errors raised without one."""
        with pytest.raises(EvaluationError) as info:
            with at_range(SourceRange(3, 7)):
                raise EvaluationError(UnusedValue("number"))
        assert info.value.range == SourceRange(3, 7)

    def test_at_range_keeps_existing(self):
        """Errors that already have a range keep it."""
        with pytest.raises(EvaluationError) as info:
            with at_range(SourceRange(3, 7)):
                raise EvaluationError(UnusedValue("number"), SourceRange(0, 1))
        assert info.value.range == SourceRange(0, 1)


class TestFormat:
    """Test formatted diagnostics."""

    SOURCE = "cube\nqube { size 2 }"

    def test_format_with_source(self):
        error = EvaluationError(UnknownSymbol("qube", ["cube"]), SourceRange(5, 9))
        assert error.format(self.SOURCE) == "\n".join([
            "2:1: error: Unknown symbol 'qube'",
            "  |",
            "  2 | qube { size 2 }",
            "    | ^^^^",
            "    = hint: Did you mean 'cube'?",
        ])

    def test_format_with_filename(self):
        error = EvaluationError(UnknownSymbol("qube", ["cube"]), SourceRange(5, 9))
        assert error.format(self.SOURCE, filename="scene.shape").startswith(
            "scene.shape:2:1: error:")

    def test_format_without_source(self):
        error = EvaluationError(AssertionFailure("Too much recursion"))
        assert error.format() == "error: Assertion failure\n    = hint: Too much recursion."

    def test_to_json(self):
        error = EvaluationError(UnknownSymbol("qube", ["cube"]), SourceRange(5, 9))
        data = error.to_json(self.SOURCE)
        assert data["type"] == "EvaluationError"
        assert data["message"] == "Unknown symbol 'qube'"
        assert data["suggestion"] == "cube"
        assert data["range"]["start"] == {"line": 2, "column": 1, "offset": 5}
        assert data["range"]["end"] == {"line": 2, "column": 5, "offset": 9}

    def test_to_json_without_source(self):
        error = ParserError("Unexpected token", SourceRange(1, 2), hint="Try again")
        data = error.to_json()
        assert data["type"] == "ParserError"
        assert data["hint"] == "Try again"
        assert data["range"] == {"start": 1, "end": 2}
