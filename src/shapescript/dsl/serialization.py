"""
JSON encoding of ShapeScript programs.

Hosts whose parser runs out of process hand programs to the evaluator as
JSON documents:

    {
      "source": "cube { size 2 }",
      "statements": [
        {"type": "block", "range": [0, 15],
         "identifier": {"name": "cube", "range": [0, 4]},
         "block": {"range": [5, 15], "statements": [...]}}
      ]
    }

Every node has a "type" (statements and expressions) and a "range" of
[start, end) character offsets into the source.
"""

from typing import Any, Callable, Dict, List, Optional

from .ast import (
    Block, BlockDefinition, BlockExpr, BlockStatement, ColorLiteral,
    CommandStatement, DefineStatement, Expression, ExpressionDefinition,
    ExpressionStatement, ForStatement, Identifier, IdentifierExpr,
    ImportStatement, InfixExpr, InfixOperator, MemberExpr, NumberLiteral,
    OptionStatement, PrefixExpr, PrefixOperator, Program, RangeExpr,
    SourceRange, Statement, StringLiteral, SubExpression, TupleExpr,
)
from ..geometry import Color


# =============================================================================
# Decoding
# =============================================================================

def _range(data: Dict[str, Any]) -> SourceRange:
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {data!r}")
    bounds = data.get("range", [0, 0])
    try:
        start, end = bounds
        return SourceRange(int(start), int(end))
    except (TypeError, ValueError):
        raise ValueError(f"invalid range: {bounds!r}")


def _field(data: Dict[str, Any], name: str) -> Any:
    try:
        return data[name]
    except (KeyError, TypeError):
        raise ValueError(f"missing field '{name}'")


def _identifier(data: Dict[str, Any]) -> Identifier:
    return Identifier(_range(data), str(_field(data, "name")))


def _block(data: Dict[str, Any]) -> Block:
    return Block(_range(data), [statement_from_dict(s) for s in data.get("statements", [])])


def _color(value: Any) -> Color:
    if isinstance(value, str):
        color = Color.from_hex(value)
    else:
        color = Color.from_components(value)
    if color is None:
        raise ValueError(f"invalid color: {value!r}")
    return color


def _optional_expression(data: Dict[str, Any], name: str) -> Optional[Expression]:
    value = data.get(name)
    return expression_from_dict(value) if value is not None else None


_EXPRESSIONS: Dict[str, Callable[[Dict[str, Any], SourceRange], Expression]] = {
    "number": lambda d, r: NumberLiteral(r, float(_field(d, "value"))),
    "string": lambda d, r: StringLiteral(r, str(_field(d, "value"))),
    "color": lambda d, r: ColorLiteral(r, _color(_field(d, "value"))),
    "identifier": lambda d, r: IdentifierExpr(r, Identifier(r, str(_field(d, "name")))),
    "block": lambda d, r: BlockExpr(
        r, _identifier(_field(d, "identifier")), _block(_field(d, "block"))),
    "tuple": lambda d, r: TupleExpr(
        r, [expression_from_dict(e) for e in _field(d, "expressions")]),
    "prefix": lambda d, r: PrefixExpr(
        r, PrefixOperator(_field(d, "operator")), expression_from_dict(_field(d, "operand"))),
    "infix": lambda d, r: InfixExpr(
        r, expression_from_dict(_field(d, "left")), InfixOperator(_field(d, "operator")),
        expression_from_dict(_field(d, "right"))),
    "range": lambda d, r: RangeExpr(
        r, expression_from_dict(_field(d, "start")), expression_from_dict(_field(d, "end")),
        _optional_expression(d, "step")),
    "member": lambda d, r: MemberExpr(
        r, expression_from_dict(_field(d, "object")), _identifier(_field(d, "member"))),
    "subexpression": lambda d, r: SubExpression(r, expression_from_dict(_field(d, "expression"))),
}


def expression_from_dict(data: Dict[str, Any]) -> Expression:
    """Decode an expression node; raises ValueError on malformed input."""
    if not isinstance(data, dict):
        raise ValueError(f"expected an expression object, got {data!r}")
    decode = _EXPRESSIONS.get(data.get("type"))
    if decode is None:
        raise ValueError(f"unknown expression type: {data.get('type')!r}")
    return decode(data, _range(data))


def _definition(data: Dict[str, Any]):
    if "block" in data:
        return BlockDefinition(_block(data["block"]))
    return ExpressionDefinition(expression_from_dict(_field(data, "expression")))


def _for(data: Dict[str, Any], rng: SourceRange) -> ForStatement:
    identifier = data.get("identifier")
    return ForStatement(
        rng,
        _identifier(identifier) if identifier is not None else None,
        expression_from_dict(_field(data, "expression")),
        _block(_field(data, "block")),
    )


_STATEMENTS: Dict[str, Callable[[Dict[str, Any], SourceRange], Statement]] = {
    "command": lambda d, r: CommandStatement(
        r, _identifier(_field(d, "identifier")), _optional_expression(d, "parameter")),
    "block": lambda d, r: BlockStatement(
        r, _identifier(_field(d, "identifier")), _block(_field(d, "block"))),
    "expression": lambda d, r: ExpressionStatement(r, expression_from_dict(_field(d, "expression"))),
    "define": lambda d, r: DefineStatement(
        r, _identifier(_field(d, "identifier")), _definition(_field(d, "definition"))),
    "option": lambda d, r: OptionStatement(
        r, _identifier(_field(d, "identifier")), expression_from_dict(_field(d, "expression"))),
    "for": _for,
    "import": lambda d, r: ImportStatement(r, expression_from_dict(_field(d, "expression"))),
}


def statement_from_dict(data: Dict[str, Any]) -> Statement:
    """Decode a statement node; raises ValueError on malformed input."""
    if not isinstance(data, dict):
        raise ValueError(f"expected a statement object, got {data!r}")
    decode = _STATEMENTS.get(data.get("type"))
    if decode is None:
        raise ValueError(f"unknown statement type: {data.get('type')!r}")
    return decode(data, _range(data))


def program_from_dict(data: Dict[str, Any]) -> Program:
    """Decode a JSON program document."""
    if not isinstance(data, dict):
        raise ValueError("program document must be an object")
    source = data.get("source", "")
    if not isinstance(source, str):
        raise ValueError("program source must be a string")
    statements = data.get("statements", [])
    if not isinstance(statements, list):
        raise ValueError("program statements must be a list")
    return Program(source, [statement_from_dict(s) for s in statements])


# =============================================================================
# Encoding
# =============================================================================

def _range_list(rng: SourceRange) -> List[int]:
    return [rng.start, rng.end]


def _identifier_dict(identifier: Identifier) -> Dict[str, Any]:
    return {"name": identifier.name, "range": _range_list(identifier.range)}


def _block_dict(block: Block) -> Dict[str, Any]:
    return {
        "range": _range_list(block.range),
        "statements": [statement_to_dict(s) for s in block.statements],
    }


def expression_to_dict(expr: Expression) -> Dict[str, Any]:
    data: Dict[str, Any] = {"range": _range_list(expr.range)}
    if isinstance(expr, NumberLiteral):
        data.update(type="number", value=expr.value)
    elif isinstance(expr, StringLiteral):
        data.update(type="string", value=expr.value)
    elif isinstance(expr, ColorLiteral):
        data.update(type="color", value=expr.color.as_list())
    elif isinstance(expr, IdentifierExpr):
        data.update(type="identifier", name=expr.identifier.name)
    elif isinstance(expr, BlockExpr):
        data.update(type="block", identifier=_identifier_dict(expr.identifier),
                    block=_block_dict(expr.block))
    elif isinstance(expr, TupleExpr):
        data.update(type="tuple", expressions=[expression_to_dict(e) for e in expr.expressions])
    elif isinstance(expr, PrefixExpr):
        data.update(type="prefix", operator=expr.operator.value,
                    operand=expression_to_dict(expr.operand))
    elif isinstance(expr, InfixExpr):
        data.update(type="infix", left=expression_to_dict(expr.left),
                    operator=expr.operator.value, right=expression_to_dict(expr.right))
    elif isinstance(expr, RangeExpr):
        data.update(type="range", start=expression_to_dict(expr.start),
                    end=expression_to_dict(expr.end))
        if expr.step is not None:
            data["step"] = expression_to_dict(expr.step)
    elif isinstance(expr, MemberExpr):
        data.update(type="member", object=expression_to_dict(expr.object),
                    member=_identifier_dict(expr.member))
    elif isinstance(expr, SubExpression):
        data.update(type="subexpression", expression=expression_to_dict(expr.expression))
    else:
        raise TypeError(f"Unknown expression type: {type(expr).__name__}")
    return data


def statement_to_dict(stmt: Statement) -> Dict[str, Any]:
    data: Dict[str, Any] = {"range": _range_list(stmt.range)}
    if isinstance(stmt, CommandStatement):
        data.update(type="command", identifier=_identifier_dict(stmt.identifier))
        if stmt.parameter is not None:
            data["parameter"] = expression_to_dict(stmt.parameter)
    elif isinstance(stmt, BlockStatement):
        data.update(type="block", identifier=_identifier_dict(stmt.identifier),
                    block=_block_dict(stmt.block))
    elif isinstance(stmt, ExpressionStatement):
        data.update(type="expression", expression=expression_to_dict(stmt.expression))
    elif isinstance(stmt, DefineStatement):
        definition = stmt.definition
        if isinstance(definition, BlockDefinition):
            encoded = {"block": _block_dict(definition.block)}
        else:
            encoded = {"expression": expression_to_dict(definition.expression)}
        data.update(type="define", identifier=_identifier_dict(stmt.identifier),
                    definition=encoded)
    elif isinstance(stmt, OptionStatement):
        data.update(type="option", identifier=_identifier_dict(stmt.identifier),
                    expression=expression_to_dict(stmt.expression))
    elif isinstance(stmt, ForStatement):
        data.update(type="for", expression=expression_to_dict(stmt.expression),
                    block=_block_dict(stmt.block))
        if stmt.identifier is not None:
            data["identifier"] = _identifier_dict(stmt.identifier)
    elif isinstance(stmt, ImportStatement):
        data.update(type="import", expression=expression_to_dict(stmt.expression))
    else:
        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")
    return data


def program_to_dict(program: Program) -> Dict[str, Any]:
    """Encode a program as a JSON-ready document."""
    return {
        "source": program.source,
        "statements": [statement_to_dict(s) for s in program.statements],
    }
