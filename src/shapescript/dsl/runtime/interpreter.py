"""
Tree-walking interpreter for ShapeScript programs.

Statements mutate the current EvaluationContext; expressions produce
Values. evaluate() runs a whole program and packages the root context's
children into a Scene.
"""

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional
import logging

import numpy as np

from .coercion import coerce
from .context import EvaluationContext
from .delegate import EvaluationDelegate
from .values import (
    RangeValue, Value, VOID, color_val, flatten_tuple, mesh_val, number_val,
    path_val, range_val, string_val, tuple_val, unwrap_value,
)
from ..ast import (
    Block, BlockExpr, BlockStatement, ColorLiteral,
    CommandStatement, DefineStatement, Definition, Expression,
    ExpressionDefinition, ExpressionStatement, ForStatement, Identifier,
    IdentifierExpr, ImportStatement, InfixExpr, InfixOperator, MemberExpr,
    NumberLiteral, OptionStatement, PrefixExpr, PrefixOperator, Program,
    RangeExpr, Statement, StringLiteral, SubExpression, TupleExpr,
)
from ..errors import (
    AssertionFailure, EvaluationError, FileAccessRestricted, FileNotFound,
    FileParsingError, FileTypeMismatch, ImportedFileError, ImportFailure,
    MissingArgument, ScriptError, TypeMismatch, UnexpectedArgument,
    UnknownMember, UnknownSymbol, at_range,
)
from ..symbols import (
    BlockSymbol, BlockType, CommandSymbol, ConstantSymbol, PropertySymbol,
    Symbol,
)
from ..types import ValueType
from ...geometry import Geometry, GeometryCache, GeometryType, Scene

logger = logging.getLogger(__name__)


# Deepest allowed nesting of user-defined block invocations
MAX_RECURSION_DEPTH = 25

SCRIPT_SUFFIX = ".shape"


class EvaluationCancelled(Exception):
    """
    Raised when the host cancels an evaluation. Not a ScriptError: it is
    never reported to the user or wrapped as an import error.
    """
    pass


class Interpreter:
    """
    Tree-walking interpreter.

    Dispatches on the AST node type to the statement and expression
    handlers below. The interpreter itself is stateless; all evaluation
    state lives in the contexts.
    """

    def evaluate_program(self, program: Program, ctx: EvaluationContext) -> None:
        """Evaluate the statements of program in ctx."""
        old_source = ctx.source
        ctx.source = program.source
        try:
            for statement in program.statements:
                self.execute(statement, ctx)
        finally:
            ctx.source = old_source

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def execute(self, stmt: Statement, ctx: EvaluationContext) -> None:
        """Execute a statement."""
        if isinstance(stmt, CommandStatement):
            self._execute_command(stmt, ctx)
        elif isinstance(stmt, BlockStatement):
            ctx.source_index = stmt.range.start
            expression = BlockExpr(stmt.range, stmt.identifier, stmt.block)
            value = self.evaluate(expression, ctx)
            with at_range(stmt.range):
                ctx.add_value(value)
        elif isinstance(stmt, ExpressionStatement):
            value = self.evaluate(stmt.expression, ctx)
            with at_range(stmt.range):
                ctx.add_value(value)
        elif isinstance(stmt, DefineStatement):
            ctx.define(stmt.identifier.name, self.evaluate_definition(stmt.definition, ctx))
        elif isinstance(stmt, OptionStatement):
            raise EvaluationError(UnknownSymbol("option", []), stmt.range)
        elif isinstance(stmt, ForStatement):
            self._execute_for(stmt, ctx)
        elif isinstance(stmt, ImportStatement):
            self._execute_import(stmt, ctx)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_command(self, stmt: CommandStatement, ctx: EvaluationContext) -> None:
        identifier, parameter = stmt.identifier, stmt.parameter
        name, rng = identifier.name, identifier.range
        symbol = ctx.symbol(name)
        if symbol is None:
            raise EvaluationError(UnknownSymbol(name, ctx.command_symbols), rng)

        if isinstance(symbol, CommandSymbol):
            argument = self.evaluate_parameter(parameter, symbol.parameter_type, identifier, ctx)
            with at_range(rng):
                ctx.add_value(symbol.fn(argument, ctx))
        elif isinstance(symbol, PropertySymbol):
            argument = self.evaluate_parameter(parameter, symbol.type, identifier, ctx)
            with at_range(rng):
                symbol.setter(argument, ctx)
        elif isinstance(symbol, BlockSymbol):
            block_type = symbol.block_type
            ctx.source_index = rng.start
            if parameter is not None:
                child = unwrap_value(self.evaluate(parameter, ctx))
                children = flatten_tuple(child)
                if not all(c.type in block_type.child_types for c in children):
                    raise EvaluationError(
                        TypeMismatch(name, 0, "block", child.type.error_description),
                        parameter.range,
                    )
                with at_range(rng):
                    child_ctx = ctx.push(block_type)
                    for c in children:
                        child_ctx.add_value(c)
                    ctx.add_value(symbol.fn(child_ctx))
            elif block_type.child_types:
                raise EvaluationError(MissingArgument(name, 0, "block"), rng)
            else:
                with at_range(rng):
                    ctx.add_value(symbol.fn(ctx.push(block_type)))
        elif isinstance(symbol, ConstantSymbol):
            with at_range(rng):
                ctx.add_value(symbol.value)

    def _execute_for(self, stmt: ForStatement, ctx: EvaluationContext) -> None:
        value = self.evaluate(stmt.expression, ctx)
        sequence: Iterable[Value]
        if value.type is ValueType.RANGE:
            sequence = (number_val(x) for x in value.data)
        elif value.type is ValueType.TUPLE:
            elements = value.data
            if len(elements) == 1 and elements[0].type is ValueType.RANGE:
                sequence = (number_val(x) for x in elements[0].data)
            else:
                sequence = elements
        else:
            raise EvaluationError(
                TypeMismatch("range", 0, "range or tuple", value.type.error_description),
                stmt.expression.range,
            )

        for element in sequence:
            if ctx.is_cancelled():
                raise EvaluationCancelled()
            with ctx.push_scope() as scope:
                if stmt.identifier is not None:
                    scope.define(stmt.identifier.name, ConstantSymbol(element))
                for statement in stmt.block.statements:
                    self.execute(statement, scope)

    def _execute_import(self, stmt: ImportStatement, ctx: EvaluationContext) -> None:
        expression = stmt.expression
        value = self.evaluate(expression, ctx)
        if value.type is not ValueType.STRING or value.data is None:
            got = "nil" if value.type is ValueType.STRING else value.type.error_description
            raise EvaluationError(
                TypeMismatch("import", 0, ValueType.STRING.error_description, got),
                expression.range,
            )
        ctx.source_index = expression.range.start
        with at_range(expression.range):
            self.import_model(value.data, ctx)

    def import_model(self, path: str, ctx: EvaluationContext) -> None:
        """
        Import a script or geometry file into ctx.

        Scripts are evaluated in ctx itself so their definitions stay
        visible; other files are loaded by the delegate and added as a
        mesh child.
        """
        url = ctx.resolve_url(path)
        logger.debug("importing %s from %s", path, url)
        if url.suffix.lower() == SCRIPT_SUFFIX:
            self._import_script(path, url, ctx)
            return
        try:
            geometry = ctx.delegate.import_geometry(url)
        except EvaluationError as error:
            if isinstance(error.type, FileTypeMismatch):
                raise EvaluationError(replace(error.type, for_name=path)) from error
            raise
        except FileNotFoundError:
            raise EvaluationError(FileNotFound(path, url))
        except PermissionError:
            raise EvaluationError(FileAccessRestricted(path, url))
        except (OSError, ValueError) as exc:
            raise EvaluationError(FileParsingError(path, url, str(exc)))
        if geometry is not None:
            ctx.add_value(mesh_val(geometry))

    def _import_script(self, path: str, url, ctx: EvaluationContext) -> None:
        if url in ctx.import_stack:
            raise EvaluationError(AssertionFailure(f"Circular import of '{url.name}'"))
        if ctx.parse is None:
            raise EvaluationError(FileTypeMismatch(path, url, None))
        try:
            source = url.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise EvaluationError(FileNotFound(path, url))
        except PermissionError:
            raise EvaluationError(FileAccessRestricted(path, url))
        except (OSError, ValueError) as exc:
            raise EvaluationError(FileParsingError(path, url, str(exc)))

        old_base_url = ctx.base_url
        ctx.import_stack.append(url)
        try:
            program = ctx.parse(source)
            ctx.base_url = url
            self.evaluate_program(program, ctx)
        except ScriptError as error:
            raise EvaluationError(
                ImportedFileError(ImportFailure(error), url.name, source)) from error
        finally:
            ctx.base_url = old_base_url
            ctx.import_stack.pop()

    # -------------------------------------------------------------------------
    # Definitions
    # -------------------------------------------------------------------------

    def evaluate_definition(self, definition: Definition, ctx: EvaluationContext) -> Symbol:
        """Evaluate the right-hand side of a `define` statement."""
        if isinstance(definition, ExpressionDefinition):
            value = self.evaluate(definition.expression, ctx.push_definition())
            if value.type is ValueType.TUPLE:
                return ConstantSymbol(value)
            # Single values are wrapped so that ordinal access and looping work
            return ConstantSymbol(tuple_val([value]))

        block = definition.block
        options: Dict[str, ValueType] = {}
        for statement in block.statements:
            if isinstance(statement, OptionStatement):
                # The default's type is the option's type
                value = self.evaluate(statement.expression, ctx)
                options[statement.identifier.name] = value.type
        source = ctx.source
        base_url = ctx.base_url

        def invoke(caller: EvaluationContext) -> Value:
            try:
                return self._invoke_block(block, ctx, caller)
            except ScriptError as error:
                if caller.base_url == base_url:
                    raise
                raise EvaluationError(ImportedFileError(
                    ImportFailure(error),
                    base_url.name if base_url is not None else "",
                    source,
                )) from error

        return BlockSymbol(BlockType.custom(None, options), invoke)

    def _invoke_block(self, block: Block, defining: EvaluationContext,
                      caller: EvaluationContext) -> Value:
        context = defining.push_definition()
        context.stack_depth = caller.stack_depth + 1
        if context.stack_depth > MAX_RECURSION_DEPTH:
            raise EvaluationError(AssertionFailure("Too much recursion"))
        logger.debug("invoking block definition at depth %d", context.stack_depth)

        for name, symbol in caller.caller_symbols.items():
            context.define(name, symbol)
        for name, symbol in caller.user_symbols.items():
            context.define(name, symbol)
        context.children.extend(caller.children)
        context.name = caller.name
        context.transform = caller.transform
        context.opacity = caller.opacity
        context.detail = caller.detail

        for statement in block.statements:
            if isinstance(statement, OptionStatement):
                if context.symbol(statement.identifier.name) is None:
                    value = self.evaluate(statement.expression, context)
                    context.define(statement.identifier.name, ConstantSymbol(value))
            else:
                self.execute(statement, context)
        return self._block_result(context)

    def _block_result(self, context: EvaluationContext) -> Value:
        children = context.children
        if len(children) == 1:
            child = children[0]
            if child.type is ValueType.MESH:
                geometry = child.data
                return mesh_val(replace(
                    geometry,
                    name=context.name,
                    transform=geometry.transform * context.transform,
                    source_location=context.source_location,
                ))
            if context.name is not None:
                return mesh_val(Geometry(
                    type=GeometryType.PATH,
                    name=context.name,
                    transform=context.transform,
                    paths=(child.data,),
                    source_location=context.source_location,
                ))
            return path_val(child.data.transformed(context.transform))

        if (context.name is None and children
                and all(c.type is ValueType.PATH for c in children)):
            return tuple_val([path_val(c.data.transformed(context.transform)) for c in children])

        nodes = []
        for child in children:
            if child.type is ValueType.PATH:
                nodes.append(Geometry(
                    type=GeometryType.PATH,
                    paths=(child.data,),
                    source_location=context.source_location,
                ))
            else:
                nodes.append(child.data)
        return mesh_val(Geometry(
            type=GeometryType.GROUP,
            name=context.name,
            transform=context.transform,
            children=tuple(nodes),
            source_location=context.source_location,
        ))

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    def evaluate_parameters(self, parameters: List[Expression],
                            ctx: EvaluationContext) -> List[Value]:
        """
        Evaluate an argument list.

        A bare command name (other than in last position) takes the rest of
        the list as its argument, and a bare block name takes the rest as
        its children, so `color red` and `union cube sphere` nest as written.
        """
        values: List[Value] = []
        for i, param in enumerate(parameters):
            if i < len(parameters) - 1 and isinstance(param, IdentifierExpr):
                identifier = param.identifier
                symbol = ctx.symbol(identifier.name)
                rest = parameters[i + 1:]
                if (isinstance(symbol, CommandSymbol)
                        and symbol.parameter_type is not ValueType.VOID):
                    rng = rest[0].range.through(rest[-1].range)
                    argument = self.evaluate_parameter(
                        TupleExpr(rng, list(rest)), symbol.parameter_type, identifier, ctx)
                    with at_range(rng):
                        values.append(symbol.fn(argument, ctx))
                    break
                if isinstance(symbol, BlockSymbol) and symbol.block_type.child_types:
                    child_ctx = ctx.push(symbol.block_type)
                    for parameter in rest:
                        for child in flatten_tuple(self.evaluate(parameter, ctx)):
                            try:
                                child_ctx.add_value(child)
                            except EvaluationError:
                                raise EvaluationError(
                                    TypeMismatch(identifier.name, 0, "block",
                                                 child.type.error_description),
                                    parameter.range,
                                )
                    with at_range(identifier.range):
                        values.append(symbol.fn(child_ctx))
                    break
            values.append(self.evaluate(param, ctx))
        return values

    def evaluate_parameter(self, parameter: Optional[Expression], type: ValueType,
                           identifier: Identifier, ctx: EvaluationContext) -> Value:
        """Evaluate the argument of a named symbol as type."""
        if parameter is None:
            if type is ValueType.VOID:
                return VOID
            raise EvaluationError(
                MissingArgument(identifier.name, 0, type.error_description),
                identifier.range.upper_bound,
            )
        return self.evaluate_as(parameter, type, identifier.name, ctx)

    def evaluate_as(self, expr: Expression, type: ValueType, name: str,
                    ctx: EvaluationContext, index: int = 0) -> Value:
        """Evaluate expr and coerce the result to type."""
        parameters = list(expr.expressions) if isinstance(expr, TupleExpr) else [expr]
        values = [unwrap_value(v) for v in self.evaluate_parameters(parameters, ctx)]
        return coerce(values, parameters, type, name, index, ctx, expr.range)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def evaluate(self, expr: Expression, ctx: EvaluationContext) -> Value:
        """Evaluate an expression to produce a Value."""
        if isinstance(expr, NumberLiteral):
            return number_val(expr.value)
        elif isinstance(expr, StringLiteral):
            return string_val(expr.value)
        elif isinstance(expr, ColorLiteral):
            return color_val(expr.color)
        elif isinstance(expr, IdentifierExpr):
            return self._eval_identifier(expr.identifier, ctx)
        elif isinstance(expr, BlockExpr):
            return self._eval_block(expr, ctx)
        elif isinstance(expr, TupleExpr):
            return tuple_val(self.evaluate_parameters(list(expr.expressions), ctx))
        elif isinstance(expr, PrefixExpr):
            return self._eval_prefix(expr, ctx)
        elif isinstance(expr, InfixExpr):
            return self._eval_infix(expr, ctx)
        elif isinstance(expr, RangeExpr):
            return self._eval_range(expr, ctx)
        elif isinstance(expr, MemberExpr):
            return self._eval_member(expr, ctx)
        elif isinstance(expr, SubExpression):
            return self.evaluate(expr.expression, ctx)
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_identifier(self, identifier: Identifier, ctx: EvaluationContext) -> Value:
        name, rng = identifier.name, identifier.range
        symbol = ctx.symbol(name)
        if symbol is None:
            raise EvaluationError(UnknownSymbol(name, ctx.expression_symbols), rng)
        if isinstance(symbol, CommandSymbol):
            if symbol.parameter_type is not ValueType.VOID:
                # Commands with arguments need parentheses inside expressions
                raise EvaluationError(
                    MissingArgument(name, 0, symbol.parameter_type.error_description),
                    rng.upper_bound,
                )
            with at_range(rng):
                return symbol.fn(VOID, ctx)
        if isinstance(symbol, PropertySymbol):
            with at_range(rng):
                return symbol.getter(ctx)
        if isinstance(symbol, BlockSymbol):
            if symbol.block_type.child_types:
                raise EvaluationError(MissingArgument(name, 0, "block"), rng.upper_bound)
            with at_range(rng):
                return symbol.fn(ctx.push(symbol.block_type))
        return symbol.value

    def _eval_block(self, expr: BlockExpr, ctx: EvaluationContext) -> Value:
        identifier, block = expr.identifier, expr.block
        name, rng = identifier.name, identifier.range
        symbol = ctx.symbol(name)
        if symbol is None:
            raise EvaluationError(UnknownSymbol(name, ctx.expression_symbols), rng)
        if isinstance(symbol, CommandSymbol):
            raise EvaluationError(
                TypeMismatch(name, 0, symbol.parameter_type.error_description, "block"),
                block.range,
            )
        if not isinstance(symbol, BlockSymbol):
            raise EvaluationError(UnexpectedArgument(name, 0), block.range)

        block_type = symbol.block_type
        options = block_type.options
        source_index = ctx.source_index
        child_ctx = ctx.push(block_type)
        # Block bodies see the caller's definitions, statement calls do not
        child_ctx.caller_symbols = ctx.scoped_user_symbols()
        for statement in block.statements:
            if (isinstance(statement, CommandStatement)
                    and statement.identifier.name in options):
                option_type = options[statement.identifier.name]
                value = self.evaluate_parameter(
                    statement.parameter, option_type, statement.identifier, child_ctx)
                child_ctx.define(statement.identifier.name, ConstantSymbol(value))
            elif isinstance(statement, OptionStatement):
                raise EvaluationError(UnknownSymbol("option", []), statement.range)
            else:
                self.execute(statement, child_ctx)
        child_ctx.source_index = source_index
        with at_range(rng):
            return symbol.fn(child_ctx)

    def _eval_prefix(self, expr: PrefixExpr, ctx: EvaluationContext) -> Value:
        value = self.evaluate_as(expr.operand, ValueType.NUMBER, expr.operator.value, ctx)
        if expr.operator is PrefixOperator.MINUS:
            return number_val(-value.double_value)
        return number_val(value.double_value)

    def _eval_infix(self, expr: InfixExpr, ctx: EvaluationContext) -> Value:
        op = expr.operator
        lhs = self.evaluate_as(expr.left, ValueType.NUMBER, op.value, ctx, index=0).double_value
        rhs = self.evaluate_as(expr.right, ValueType.NUMBER, op.value, ctx, index=1).double_value
        if op is InfixOperator.PLUS:
            return number_val(lhs + rhs)
        if op is InfixOperator.MINUS:
            return number_val(lhs - rhs)
        if op is InfixOperator.TIMES:
            return number_val(lhs * rhs)
        # Division follows IEEE rules: x / 0 is infinite, 0 / 0 is NaN
        with np.errstate(all="ignore"):
            return number_val(float(np.float64(lhs) / np.float64(rhs)))

    def _eval_range(self, expr: RangeExpr, ctx: EvaluationContext) -> Value:
        start = self.evaluate_as(expr.start, ValueType.NUMBER, "start value", ctx).double_value
        end = self.evaluate_as(expr.end, ValueType.NUMBER, "end value", ctx).double_value
        if expr.step is None:
            return range_val(RangeValue(start, end))
        step = self.evaluate_as(expr.step, ValueType.NUMBER, "step value", ctx).double_value
        try:
            return range_val(RangeValue(start, end, step))
        except ValueError:
            raise EvaluationError(AssertionFailure("Step value must be nonzero"), expr.step.range)

    def _eval_member(self, expr: MemberExpr, ctx: EvaluationContext) -> Value:
        value = self.evaluate(expr.object, ctx)
        name = expr.member.name
        member = value.member(name)
        if member is not None:
            return member
        if value.type is ValueType.TUPLE and len(value.data) == 1:
            value = value.data[0]
        raise EvaluationError(
            UnknownMember(name, value.type.error_description, value.members),
            expr.member.range,
        )


def evaluate(
    program: Program,
    delegate: Optional[EvaluationDelegate] = None,
    cache: Optional[GeometryCache] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
    parse: Optional[Callable[[str], Program]] = None,
) -> Scene:
    """
    Evaluate a program and build its scene.

    Args:
        program: The parsed program
        delegate: Host callbacks for files, fonts and debug output
        cache: Geometry cache handed through to the scene
        is_cancelled: Polled at the start of every loop iteration; when it
            returns True evaluation stops and the partial scene is returned
        parse: Parser used to evaluate imported scripts

    Raises:
        ScriptError: if the program fails to evaluate
    """
    context = EvaluationContext(source=program.source, delegate=delegate, parse=parse)
    if is_cancelled is not None:
        context.is_cancelled = is_cancelled
    logger.debug("evaluating program (%d statements)", len(program.statements))
    try:
        Interpreter().evaluate_program(program, context)
    except EvaluationCancelled:
        logger.debug("evaluation cancelled")
    scene = Scene(
        background=context.background,
        children=[c.data for c in context.children if c.type is ValueType.MESH],
        cache=cache if cache is not None else GeometryCache(),
    )
    logger.debug("evaluation finished with %d nodes", len(scene.children))
    return scene
