"""
Helpers for building ShapeScript ASTs in tests.

Every node gets a distinct source range so that tests can check which node
an error points at.
"""

from shapescript.dsl.ast import (
    Block, BlockDefinition, BlockExpr, BlockStatement, ColorLiteral,
    CommandStatement, DefineStatement, ExpressionDefinition,
    ExpressionStatement, ForStatement, Identifier, IdentifierExpr,
    ImportStatement, InfixExpr, InfixOperator, MemberExpr, NumberLiteral,
    OptionStatement, PrefixExpr, PrefixOperator, Program, RangeExpr,
    SourceRange, StringLiteral, SubExpression, TupleExpr,
)
from shapescript.geometry import Color


class Builder:
    """Creates AST nodes with increasing, non-overlapping ranges."""

    def __init__(self):
        self._offset = 0

    def range(self, width=1):
        rng = SourceRange(self._offset, self._offset + width)
        self._offset += width + 1
        return rng

    # Expressions

    def ident(self, name):
        return Identifier(self.range(len(name)), name)

    def num(self, value):
        return NumberLiteral(self.range(len(str(value))), float(value))

    def string(self, value):
        return StringLiteral(self.range(len(value) + 2), value)

    def color(self, r, g, b, a=1.0):
        return ColorLiteral(self.range(7), Color(r, g, b, a))

    def name(self, name):
        identifier = self.ident(name)
        return IdentifierExpr(identifier.range, identifier)

    def tuple(self, *expressions):
        rng = expressions[0].range.through(expressions[-1].range)
        return TupleExpr(rng, list(expressions))

    def paren(self, expression):
        rng = expression.range
        return SubExpression(SourceRange(rng.start - 1, rng.end + 1), expression)

    def neg(self, operand):
        return PrefixExpr(self.range(1).through(operand.range), PrefixOperator.MINUS, operand)

    def infix(self, left, op, right):
        return InfixExpr(left.range.through(right.range), left, InfixOperator(op), right)

    def to(self, start, end, step=None):
        last = step if step is not None else end
        return RangeExpr(start.range.through(last.range), start, end, step)

    def member(self, obj, name):
        identifier = self.ident(name)
        return MemberExpr(obj.range.through(identifier.range), obj, identifier)

    def block(self, name, *statements):
        identifier = self.ident(name)
        body = self.body(*statements)
        return BlockExpr(identifier.range.through(body.range), identifier, body)

    def body(self, *statements):
        return Block(self.range(2), list(statements))

    # Statements

    def cmd(self, name, *params):
        identifier = self.ident(name)
        if not params:
            parameter = None
        elif len(params) == 1:
            parameter = params[0]
        else:
            parameter = self.tuple(*params)
        end = parameter.range if parameter is not None else identifier.range
        return CommandStatement(identifier.range.through(end), identifier, parameter)

    def block_stmt(self, name, *statements):
        expr = self.block(name, *statements)
        return BlockStatement(expr.range, expr.identifier, expr.block)

    def expr_stmt(self, expression):
        return ExpressionStatement(expression.range, expression)

    def define(self, name, *value):
        """define name expression, or define name { statements } for statements."""
        identifier = self.ident(name)
        if len(value) == 1 and not isinstance(value[0], (CommandStatement, BlockStatement,
                                                        ExpressionStatement, ForStatement,
                                                        OptionStatement, DefineStatement,
                                                        ImportStatement)):
            definition = ExpressionDefinition(value[0])
            end = value[0].range
        else:
            definition = BlockDefinition(self.body(*value))
            end = definition.block.range
        return DefineStatement(identifier.range.through(end), identifier, definition)

    def option(self, name, default):
        identifier = self.ident(name)
        return OptionStatement(identifier.range.through(default.range), identifier, default)

    def loop(self, name, expression, *statements):
        identifier = self.ident(name) if name is not None else None
        body = self.body(*statements)
        return ForStatement(expression.range.through(body.range), identifier, expression, body)

    def import_(self, path):
        expression = self.string(path) if isinstance(path, str) else path
        return ImportStatement(expression.range, expression)

    def program(self, *statements, source=""):
        return Program(source, list(statements))
