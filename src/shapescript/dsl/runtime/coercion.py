"""
Argument coercion.

Commands declare the type of argument they take; scripts are lax about how
they write it (`color 1 0 0`, `color (1 0 0)`, `color red`, ...). coerce()
turns the evaluated parameter values into a single Value of the declared
type, or raises an error pointing at the offending parameter.
"""

from typing import List, Optional, Sequence

from .values import (
    Value, VOID, color_val, number_val, size_val, string_val, texture_val,
    tuple_val, vector_val,
)
from ..ast import Expression, SourceRange, SubExpression, TupleExpr
from ..errors import (
    EvaluationError, MissingArgument, TypeMismatch, UnexpectedArgument,
    UnknownFont, at_range,
)
from ..types import ValueType
from ...geometry import Color, Texture, Vector


def normalize_font_name(name: str) -> str:
    return name.strip().replace("\t", " ").replace("  ", " ")


def validate_font(name: Optional[str], context) -> Optional[str]:
    """
    Normalise a font name and check it against the delegate's catalogue.

    Raises:
        EvaluationError: UnknownFont if the catalogue does not list it
    """
    if name is None:
        return None
    name = normalize_font_name(name)
    catalogue = context.delegate.font_names() if context.delegate is not None else None
    if catalogue is not None and name not in catalogue:
        raise EvaluationError(UnknownFont(name, list(catalogue)))
    return name


def _is_number_tuple(value: Value) -> bool:
    return (value.type is ValueType.TUPLE
            and all(v.type is ValueType.NUMBER for v in value.data))


def _element_range(parameter: Expression, index: int) -> SourceRange:
    expression = parameter
    while isinstance(expression, SubExpression):
        expression = expression.expression
    if isinstance(expression, TupleExpr) and index < len(expression.expressions):
        return expression.expressions[index].range
    return parameter.range


def _numerify(values: List[Value], parameters: Sequence[Expression], type: ValueType,
              name: str, index: int, range: SourceRange,
              maximum: int, minimum: int) -> List[float]:
    if len(parameters) > maximum:
        raise EvaluationError(UnexpectedArgument(name, maximum), parameters[maximum].range)
    if len(parameters) < minimum:
        upper_bound = parameters[-1].range.upper_bound
        raise EvaluationError(MissingArgument(name, minimum - 1, "number"), upper_bound)

    if len(values) == 1 and values[0].type is ValueType.TUPLE:
        elements = list(values[0].data)
        if len(elements) > maximum:
            raise EvaluationError(UnexpectedArgument(name, maximum),
                                  _element_range(parameters[0], maximum))
        values = elements

    if len(values) > 1 and (values[0].type is type or _is_number_tuple(values[0])):
        if len(parameters) > 1:
            raise EvaluationError(UnexpectedArgument(name, 1), parameters[1].range)
        types = [type.error_description] + [v.type.error_description for v in values[1:]]
        raise EvaluationError(
            TypeMismatch(name, index, type.error_description, ", ".join(types)), range)

    numbers = []
    for i, value in enumerate(values):
        if value.type is not ValueType.NUMBER:
            i = min(len(parameters) - 1, i)
            expected = type if i == 0 else ValueType.NUMBER
            raise EvaluationError(
                TypeMismatch(name, index + i, expected.error_description,
                             value.type.error_description),
                parameters[i].range,
            )
        numbers.append(value.data)
    return numbers


def coerce(values: List[Value], parameters: Sequence[Expression], type: ValueType,
           name: str, index: int, context, range: SourceRange) -> Value:
    """
    Coerce evaluated parameter values to type.

    Args:
        values: The unwrapped parameter values (at most one per parameter)
        parameters: The parameter expressions the values came from
        type: The type the receiving symbol declares
        name: The receiving symbol's name, used in diagnostics
        index: Position of the first parameter in the argument list
        context: The evaluation context, for URL and font resolution
        range: The range of the whole argument expression

    Raises:
        EvaluationError: if the values cannot be coerced
    """
    if not parameters:
        if type is not ValueType.VOID:
            raise EvaluationError(MissingArgument(name, index, type.error_description), range)
        return VOID

    if len(values) == 1 and values[0].type is type:
        return values[0]

    def numerify(maximum: int, minimum: int) -> List[float]:
        return _numerify(values, parameters, type, name, index, range, maximum, minimum)

    if type is ValueType.COLOR:
        return color_val(Color.unchecked(numerify(4, 1)))
    if type is ValueType.VECTOR:
        return vector_val(Vector.from_components(numerify(3, 1)))
    if type is ValueType.SIZE:
        return size_val(Vector.size(numerify(3, 1)))
    if type is ValueType.PAIR:
        return tuple_val([number_val(n) for n in numerify(2, 2)])
    if type is ValueType.TUPLE:
        return tuple_val(values)

    if type is ValueType.TEXTURE and len(values) == 1 and values[0].type is ValueType.STRING:
        path = values[0].data
        with at_range(parameters[0].range):
            if path is None:
                return texture_val(None)
            return texture_val(Texture.file(path, context.resolve_url(path)))

    if type is ValueType.COLOR_OR_TEXTURE:
        if values[0].type in (ValueType.STRING, ValueType.TEXTURE):
            return coerce(values, parameters, ValueType.TEXTURE, name, index, context, range)
        return coerce(values, parameters, ValueType.COLOR, name, index, context, range)

    if type is ValueType.FONT and len(values) == 1 and values[0].type is ValueType.STRING:
        with at_range(parameters[0].range):
            return string_val(validate_font(values[0].data, context))

    if type is ValueType.PATHS:
        paths: List[Value] = []
        for i, value in enumerate(values):
            if value.type is ValueType.PATH:
                paths.append(value)
            elif (value.type is ValueType.TUPLE
                  and all(v.type is ValueType.PATH for v in value.data)):
                paths.extend(value.data)
            else:
                raise EvaluationError(
                    TypeMismatch(name, index + i, ValueType.PATH.error_description,
                                 value.type.error_description),
                    parameters[i].range,
                )
        return tuple_val(paths)

    if type is ValueType.VOID:
        raise EvaluationError(UnexpectedArgument(name, 0), parameters[0].range)

    # number, string, path, mesh, point, range, and texture/font otherwise
    if len(values) > 1 and len(parameters) > 1:
        raise EvaluationError(UnexpectedArgument(name, 1), parameters[1].range)
    raise EvaluationError(
        TypeMismatch(name, index, type.error_description, values[0].type.error_description),
        parameters[0].range,
    )
