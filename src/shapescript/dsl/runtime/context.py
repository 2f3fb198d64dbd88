"""
Evaluation context for the ShapeScript interpreter.

Contexts form a tree: the root context belongs to the program, and a child
context is pushed for every block invocation, loop body and definition.
Each context accumulates the children produced by its statements together
with the transform, material and naming state they set.
"""

import logging
import random as _random
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional

from .builtins import standard_symbols
from .delegate import EvaluationDelegate
from .values import Value
from ..ast import KEYWORDS, Program, SourceLocation
from ..errors import EvaluationError, FileNotFound, UnusedValue
from ..symbols import BlockType, ConstantSymbol, Symbol, SymbolTable
from ..types import DEFINITION_CHILD_TYPES, ValueType
from ...geometry import Geometry, GeometryType, Material, MaterialProperty, Transform

logger = logging.getLogger(__name__)


def _never_cancelled() -> bool:
    return False


# State a loop scope shares with, and hands back to, its parent
_SCOPE_STATE = (
    "children", "name", "transform", "child_transform", "material",
    "opacity", "detail", "font", "background", "source_index",
)


@dataclass
class EvaluationContext:
    """
    A scope record of the evaluation.

    Local definitions live in `user_symbols`; lookups that miss locally walk
    the `parent` chain and finally the standard table named by `symbols`.
    """
    # Program and host
    source: str = ""
    delegate: Optional[EvaluationDelegate] = None
    is_cancelled: Callable[[], bool] = _never_cancelled
    parse: Optional[Callable[[str], Program]] = None
    base_url: Optional[Path] = None
    source_index: Optional[int] = None

    # Scope chain
    parent: Optional["EvaluationContext"] = field(default=None, repr=False)
    symbols: SymbolTable = SymbolTable.ROOT
    user_symbols: Dict[str, Symbol] = field(default_factory=dict)
    caller_symbols: Dict[str, Symbol] = field(default_factory=dict, repr=False)

    # Accumulated output
    child_types: FrozenSet[ValueType] = frozenset({ValueType.MESH})
    children: List[Value] = field(default_factory=list)

    # Node state
    name: Optional[str] = None
    transform: Transform = Transform.IDENTITY
    child_transform: Transform = Transform.IDENTITY
    material: Material = Material.DEFAULT
    opacity: float = 1.0
    detail: int = 16
    font: Optional[str] = None
    background: Optional[MaterialProperty] = None

    # Evaluation state
    stack_depth: int = 0
    random: _random.Random = field(default_factory=lambda: _random.Random(0), repr=False)
    import_stack: List[Path] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    def push(self, block_type: BlockType) -> "EvaluationContext":
        """Create the context for a block invocation."""
        return EvaluationContext(
            source=self.source,
            delegate=self.delegate,
            is_cancelled=self.is_cancelled,
            parse=self.parse,
            base_url=self.base_url,
            source_index=self.source_index,
            parent=self,
            symbols=block_type.symbols,
            child_types=block_type.child_types,
            material=self.material,
            opacity=self.opacity,
            detail=self.detail,
            font=self.font,
            background=self.background,
            stack_depth=self.stack_depth,
            random=self.random,
            import_stack=self.import_stack,
        )

    def push_definition(self) -> "EvaluationContext":
        """Create the context for a definition body."""
        context = self.push(BlockType.GROUP)
        context.symbols = SymbolTable.DEFINITION
        context.child_types = DEFINITION_CHILD_TYPES
        return context

    @contextmanager
    def push_scope(self) -> Iterator["EvaluationContext"]:
        """
        Context manager for a loop body.

        Usage:
            with context.push_scope() as scope:
                scope.define("i", ConstantSymbol(number_val(0)))

        The scope shares this context's state; whatever it changed is
        copied back on exit, even when unwinding, while its local
        definitions are dropped.
        """
        scope = replace(self, parent=self, user_symbols={})
        try:
            yield scope
        finally:
            for name in _SCOPE_STATE:
                setattr(self, name, getattr(scope, name))

    # -------------------------------------------------------------------------
    # Symbols
    # -------------------------------------------------------------------------

    def define(self, name: str, symbol: Symbol) -> None:
        """Bind name in the local table, replacing any previous binding."""
        self.user_symbols[name] = symbol

    def symbol(self, name: str) -> Optional[Symbol]:
        """Look up a name in the local tables, then the standard table."""
        context: Optional[EvaluationContext] = self
        while context is not None:
            symbol = context.user_symbols.get(name)
            if symbol is not None:
                return symbol
            context = context.parent
        return standard_symbols(self.symbols).get(name)

    def scoped_user_symbols(self) -> Dict[str, Symbol]:
        """User definitions visible here, inner scopes shadowing outer ones."""
        chain = []
        context: Optional[EvaluationContext] = self
        while context is not None:
            chain.append(context)
            context = context.parent
        visible: Dict[str, Symbol] = {}
        for context in reversed(chain):
            visible.update(context.user_symbols)
        return visible

    def _visible_symbols(self) -> Dict[str, Symbol]:
        visible = dict(standard_symbols(self.symbols))
        visible.update(self.scoped_user_symbols())
        return visible

    @property
    def expression_symbols(self) -> List[str]:
        """Names usable in an expression, for suggestions."""
        return sorted(self._visible_symbols())

    @property
    def command_symbols(self) -> List[str]:
        """Names usable as a statement, including keywords."""
        return sorted(set(self._visible_symbols()) | KEYWORDS)

    def option_value(self, name: str) -> Optional[Value]:
        """The value bound to a block option, if any."""
        symbol = self.user_symbols.get(name)
        if isinstance(symbol, ConstantSymbol):
            return symbol.value
        return None

    # -------------------------------------------------------------------------
    # Children
    # -------------------------------------------------------------------------

    @property
    def source_location(self) -> Optional[SourceLocation]:
        """Where the node currently being built was written."""
        if self.source_index is None:
            return None
        filename = self.base_url.name if self.base_url is not None else None
        return SourceLocation.of(self.source, self.source_index, filename)

    def add_value(self, value: Value) -> None:
        """
        Add a value produced by a statement to this context's children.

        Raises:
            EvaluationError: if this context has no use for the value
        """
        if value.type in self.child_types:
            data = value.data
            if value.type in (ValueType.MESH, ValueType.VECTOR, ValueType.POINT, ValueType.PATH):
                data = data.transformed(self.child_transform)
            self.children.append(Value(value.type, data))
        elif value.type is ValueType.PATH and ValueType.MESH in self.child_types:
            self.children.append(Value(ValueType.MESH, Geometry(
                type=GeometryType.PATH,
                name=self.name,
                transform=self.child_transform,
                paths=(value.data,),
                source_location=self.source_location,
            )))
        elif value.type is ValueType.TUPLE:
            for element in value.data:
                self.add_value(element)
        else:
            raise EvaluationError(UnusedValue(value.type.error_description))

    # -------------------------------------------------------------------------
    # Host
    # -------------------------------------------------------------------------

    def resolve_url(self, path: str) -> Path:
        """Resolve a path through the delegate."""
        if self.delegate is None:
            raise EvaluationError(FileNotFound(path, None))
        return self.delegate.resolve_url(path)

    def debug_log(self, values: List[Value]) -> None:
        logger.debug("print %s", [v.python_value for v in values])
        if self.delegate is not None:
            self.delegate.debug_log([v.python_value for v in values])
