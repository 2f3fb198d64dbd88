"""
Symbols and block types for the ShapeScript evaluator.

A Symbol is what a name resolves to: a command, a property, a block or a
constant. Symbols are immutable; redefining a name replaces the binding in
the local table of the current context.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Union

from .types import ValueType


Options = Mapping[str, ValueType]


class SymbolTable(Enum):
    """The standard symbol tables, selected by block type."""
    PRIMITIVE = auto()
    GROUP = auto()
    BUILDER = auto()
    PATH = auto()
    TEXT = auto()
    DEFINITION = auto()
    ROOT = auto()


class BlockKind(Enum):
    BUILDER = "builder"
    GROUP = "group"
    PATH = "path"
    TEXT = "text"
    CUSTOM = "custom"


_CHILD_TYPES = {
    BlockKind.BUILDER: frozenset({ValueType.PATH}),
    BlockKind.GROUP: frozenset({ValueType.MESH}),
    BlockKind.PATH: frozenset({ValueType.POINT, ValueType.PATH}),
    BlockKind.TEXT: frozenset({ValueType.STRING}),
}

_SYMBOL_TABLES = {
    BlockKind.BUILDER: SymbolTable.BUILDER,
    BlockKind.GROUP: SymbolTable.GROUP,
    BlockKind.PATH: SymbolTable.PATH,
    BlockKind.TEXT: SymbolTable.TEXT,
}


@dataclass(frozen=True)
class BlockType:
    """
    The kind of a block: which children it accepts, which standard symbols
    are visible inside it and which options it declares.

    Custom block types (user definitions and shapes with options) extend an
    optional base type; without a base they accept no children and see the
    primitive symbol table.
    """
    kind: BlockKind
    base: Optional["BlockType"] = None
    own_options: Mapping[str, ValueType] = field(default_factory=dict)

    @classmethod
    def custom(cls, base: Optional["BlockType"] = None,
               options: Optional[Options] = None) -> "BlockType":
        return cls(BlockKind.CUSTOM, base, dict(options or {}))

    @property
    def options(self) -> Dict[str, ValueType]:
        if self.kind is not BlockKind.CUSTOM:
            return {}
        merged = dict(self.base.options) if self.base is not None else {}
        merged.update(self.own_options)
        return merged

    @property
    def child_types(self) -> FrozenSet[ValueType]:
        if self.kind is BlockKind.CUSTOM:
            return self.base.child_types if self.base is not None else frozenset()
        return _CHILD_TYPES[self.kind]

    @property
    def symbols(self) -> SymbolTable:
        if self.kind is BlockKind.CUSTOM:
            return self.base.symbols if self.base is not None else SymbolTable.PRIMITIVE
        return _SYMBOL_TABLES[self.kind]


BlockType.BUILDER = BlockType(BlockKind.BUILDER)
BlockType.GROUP = BlockType(BlockKind.GROUP)
BlockType.PATH = BlockType(BlockKind.PATH)
BlockType.TEXT = BlockType(BlockKind.TEXT)
BlockType.PRIMITIVE = BlockType.custom()


# Signatures below use Any for the value and context to avoid an import
# cycle with the runtime package.

@dataclass(frozen=True)
class CommandSymbol:
    """A command taking one argument of parameter_type and returning a Value."""
    parameter_type: ValueType
    fn: Callable[[Any, Any], Any]


@dataclass(frozen=True)
class PropertySymbol:
    """A settable/gettable attribute of the current context."""
    type: ValueType
    setter: Callable[[Any, Any], None]
    getter: Callable[[Any], Any]


@dataclass(frozen=True)
class BlockSymbol:
    """A block builder, invoked with a fresh child context."""
    block_type: BlockType
    fn: Callable[[Any], Any]


@dataclass(frozen=True)
class ConstantSymbol:
    value: Any


Symbol = Union[CommandSymbol, PropertySymbol, BlockSymbol, ConstantSymbol]
