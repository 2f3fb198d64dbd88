"""
Tests for program JSON encoding, the file delegate and the command line.
"""

import io
import json

import pytest

from shapescript.__main__ import main
from shapescript.dsl import FileDelegate, evaluate, program_from_dict, program_to_dict
from shapescript.dsl.ast import (
    BlockDefinition, BlockStatement, CommandStatement, DefineStatement,
    ForStatement, InfixExpr, InfixOperator, RangeExpr, SourceRange, TupleExpr,
)
from shapescript.dsl.runtime.delegate import format_debug_value
from shapescript.dsl.serialization import expression_from_dict
from shapescript.geometry import Color, GeometryType, SCHEMA_ID


CUBE_DOCUMENT = {
    "source": "cube { size 2 }",
    "statements": [
        {
            "type": "block",
            "range": [0, 15],
            "identifier": {"name": "cube", "range": [0, 4]},
            "block": {
                "range": [5, 15],
                "statements": [
                    {
                        "type": "command",
                        "range": [7, 13],
                        "identifier": {"name": "size", "range": [7, 11]},
                        "parameter": {"type": "number", "range": [12, 13], "value": 2.0},
                    },
                ],
            },
        },
    ],
}


LOOP_DOCUMENT = {
    "source": "define n 1 + 2\nfor i in 1 to n step 1 { print i }",
    "statements": [
        {
            "type": "define",
            "range": [0, 14],
            "identifier": {"name": "n", "range": [7, 8]},
            "definition": {
                "expression": {
                    "type": "infix",
                    "range": [9, 14],
                    "left": {"type": "number", "range": [9, 10], "value": 1.0},
                    "operator": "+",
                    "right": {"type": "number", "range": [13, 14], "value": 2.0},
                },
            },
        },
        {
            "type": "for",
            "range": [15, 49],
            "identifier": {"name": "i", "range": [19, 20]},
            "expression": {
                "type": "range",
                "range": [24, 37],
                "start": {"type": "number", "range": [24, 25], "value": 1.0},
                "end": {"type": "identifier", "range": [29, 30], "name": "n"},
                "step": {"type": "number", "range": [36, 37], "value": 1.0},
            },
            "block": {
                "range": [38, 49],
                "statements": [
                    {
                        "type": "command",
                        "range": [40, 47],
                        "identifier": {"name": "print", "range": [40, 45]},
                        "parameter": {"type": "identifier", "range": [46, 47], "name": "i"},
                    },
                ],
            },
        },
    ],
}


class TestDecoding:
    """Test decoding JSON program documents."""

    def test_block_statement(self):
        program = program_from_dict(CUBE_DOCUMENT)
        stmt = program.statements[0]
        assert isinstance(stmt, BlockStatement)
        assert stmt.identifier.name == "cube"
        assert stmt.range == SourceRange(0, 15)
        inner = stmt.block.statements[0]
        assert isinstance(inner, CommandStatement)
        assert inner.parameter.value == 2.0

    def test_define_and_for(self):
        program = program_from_dict(LOOP_DOCUMENT)
        define, loop = program.statements
        assert isinstance(define, DefineStatement)
        assert isinstance(define.definition.expression, InfixExpr)
        assert define.definition.expression.operator is InfixOperator.PLUS
        assert isinstance(loop, ForStatement)
        assert isinstance(loop.expression, RangeExpr)
        assert loop.expression.step is not None

    def test_block_definition(self):
        data = {
            "type": "define",
            "identifier": {"name": "thing"},
            "definition": {"block": {"statements": []}},
        }
        program = program_from_dict({"statements": [data]})
        assert isinstance(program.statements[0].definition, BlockDefinition)

    def test_encode_decode(self):
        """Encoding a decoded document gives the document back."""
        assert program_to_dict(program_from_dict(LOOP_DOCUMENT)) == LOOP_DOCUMENT

    def test_color_literal(self):
        expr = expression_from_dict({"type": "color", "value": "#ff0000"})
        assert expr.color == Color.RED
        expr = expression_from_dict({"type": "color", "value": [0, 0, 1]})
        assert expr.color == Color.BLUE

    def test_tuple(self):
        expr = expression_from_dict({"type": "tuple", "expressions": [
            {"type": "number", "value": 1},
            {"type": "string", "value": "a"},
        ]})
        assert isinstance(expr, TupleExpr)
        assert len(expr.expressions) == 2

    @pytest.mark.parametrize("document, message", [
        ({"statements": [{"type": "goto"}]}, "unknown statement type"),
        ({"statements": [{"type": "command"}]}, "missing field 'identifier'"),
        ({"statements": [{"type": "import", "expression": {"type": "number", "value": 1,
                                                           "range": [0]}}]},
         "invalid range"),
        ({"statements": {}}, "must be a list"),
        ([], "must be an object"),
    ])
    def test_malformed(self, document, message):
        with pytest.raises(ValueError, match=message):
            program_from_dict(document)

    def test_evaluate_decoded(self, tmp_path):
        output = io.StringIO()
        program = program_from_dict(LOOP_DOCUMENT)
        evaluate(program, delegate=FileDelegate(tmp_path, output=output))
        assert output.getvalue().splitlines() == ["1", "2", "3"]


class TestFileDelegate:
    """Test the file-system delegate."""

    def test_resolve_relative(self, tmp_path):
        delegate = FileDelegate(tmp_path)
        assert delegate.resolve_url("a/b.json") == tmp_path / "a" / "b.json"

    def test_resolve_absolute(self, tmp_path):
        delegate = FileDelegate(tmp_path / "elsewhere")
        assert delegate.resolve_url(str(tmp_path / "x.json")) == tmp_path / "x.json"

    def test_resolve_directory(self, tmp_path):
        """A directory containing a same-named file resolves to the file."""
        (tmp_path / "lib.shape").mkdir()
        (tmp_path / "lib.shape" / "lib.shape").write_text("")
        delegate = FileDelegate(tmp_path)
        assert delegate.resolve_url("lib.shape") == tmp_path / "lib.shape" / "lib.shape"

    def test_import_single_node(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text(json.dumps({"type": "sphere", "name": "ball"}))
        node = FileDelegate(tmp_path).import_geometry(path)
        assert node.type is GeometryType.SPHERE
        assert node.name == "ball"

    def test_import_several_children(self, tmp_path):
        path = tmp_path / "scene.json"
        path.write_text(json.dumps({
            "schema": SCHEMA_ID,
            "children": [{"type": "cube"}, {"type": "cone"}],
        }))
        node = FileDelegate(tmp_path).import_geometry(path)
        assert node.type is GeometryType.GROUP
        assert len(node.children) == 2

    def test_import_empty_scene(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"schema": SCHEMA_ID, "children": []}))
        assert FileDelegate(tmp_path).import_geometry(path) is None

    def test_import_wrong_schema(self, tmp_path):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"schema": "other", "children": []}))
        with pytest.raises(ValueError, match="Unsupported schema"):
            FileDelegate(tmp_path).import_geometry(path)

    def test_import_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(ValueError, match="Invalid JSON"):
            FileDelegate(tmp_path).import_geometry(path)

    def test_scene_export_imports(self, tmp_path):
        """Scenes written by the evaluator can be imported again."""
        scene = evaluate(program_from_dict(CUBE_DOCUMENT))
        path = tmp_path / "cube.json"
        path.write_text(json.dumps(scene.to_dict()))
        node = FileDelegate(tmp_path).import_geometry(path)
        assert node == scene.children[0]

    def test_format_debug_value(self):
        assert format_debug_value([1.0, 2.5, "a", None]) == "1 2.5 a nil"

    def test_debug_log(self, tmp_path):
        output = io.StringIO()
        FileDelegate(tmp_path, output=output).debug_log([1.0, "x"])
        assert output.getvalue() == "1 x\n"


class TestCommandLine:
    """Test python -m shapescript."""

    def _write(self, tmp_path, document, name="scene.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path

    def test_check(self, tmp_path, capsys):
        path = self._write(tmp_path, CUBE_DOCUMENT)
        assert main(["check", str(path)]) == 0
        assert "OK: scene.json - 1 statement(s)" in capsys.readouterr().out

    def test_check_malformed(self, tmp_path, capsys):
        path = self._write(tmp_path, {"statements": [{"type": "goto"}]})
        assert main(["check", str(path)]) == 1
        assert "unknown statement type" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_run_summary(self, tmp_path, capsys):
        path = self._write(tmp_path, CUBE_DOCUMENT)
        assert main(["run", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Scene: 1 node(s)" in out
        assert "cube" in out

    def test_run_output(self, tmp_path):
        path = self._write(tmp_path, CUBE_DOCUMENT)
        output = tmp_path / "out.json"
        assert main(["run", str(path), "--output", str(output)]) == 0
        data = json.loads(output.read_text())
        assert data["schema"] == SCHEMA_ID
        assert data["children"][0]["type"] == "cube"

    def test_run_error(self, tmp_path, capsys):
        document = {
            "source": "qube",
            "statements": [{
                "type": "command",
                "range": [0, 4],
                "identifier": {"name": "qube", "range": [0, 4]},
            }],
        }
        path = self._write(tmp_path, document)
        assert main(["run", str(path)]) == 1
        err = capsys.readouterr().err
        assert "scene.json:1:1: error: Unknown symbol 'qube'" in err
        assert "Did you mean 'cube'?" in err
