"""
Abstract Syntax Tree (AST) node definitions for ShapeScript programs.

The evaluator consumes these nodes; producing them from source text is the
parser's job. Every node carries the SourceRange it was parsed from so that
runtime errors can point at the exact offending text.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from ..geometry import Color


# =============================================================================
# Source positions
# =============================================================================

@dataclass(frozen=True)
class SourceRange:
    """Half-open character range [start, end) into the program source."""
    start: int
    end: int

    @property
    def upper_bound(self) -> "SourceRange":
        """The empty range immediately after this one."""
        return SourceRange(self.end, self.end)

    def through(self, other: "SourceRange") -> "SourceRange":
        """Range covering self up to the end of other."""
        return SourceRange(self.start, other.end)

    def __str__(self) -> str:
        return f"{self.start}..<{self.end}"


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"

    @classmethod
    def of(cls, source: str, offset: int, filename: Optional[str] = None) -> "SourceLocation":
        """Compute the line/column of a character offset in source."""
        offset = max(0, min(offset, len(source)))
        line = source.count("\n", 0, offset) + 1
        line_start = source.rfind("\n", 0, offset) + 1
        return cls(line=line, column=offset - line_start + 1, offset=offset, filename=filename)


def source_line(source: str, line: int) -> Optional[str]:
    """Get a 1-indexed line of source, or None if out of range."""
    lines = source.split("\n")
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return None


# Statement keywords of the language. Used to phrase "unexpected symbol"
# errors and as suggestion candidates.
KEYWORDS = frozenset({"define", "option", "for", "in", "to", "step", "import"})


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode:
    """Base class for all AST nodes."""
    range: SourceRange  # Source location for error reporting


@dataclass
class Identifier(AstNode):
    """A name as written in the source."""
    name: str


# =============================================================================
# Expression Nodes
# =============================================================================

class PrefixOperator(Enum):
    MINUS = "-"
    PLUS = "+"


class InfixOperator(Enum):
    PLUS = "+"
    MINUS = "-"
    TIMES = "*"
    DIVIDE = "/"


@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class NumberLiteral(Expression):
    value: float


@dataclass
class StringLiteral(Expression):
    value: str


@dataclass
class ColorLiteral(Expression):
    """A hex color literal such as #ff0000."""
    color: Color


@dataclass
class IdentifierExpr(Expression):
    """A bare symbol reference."""
    identifier: Identifier


@dataclass
class BlockExpr(Expression):
    """A block invocation, e.g. `cube { size 2 }`."""
    identifier: Identifier
    block: "Block"


@dataclass
class TupleExpr(Expression):
    """
    A space-separated list of expressions. This is also how the argument
    list of a command is represented.
    """
    expressions: List[Expression]


@dataclass
class PrefixExpr(Expression):
    operator: PrefixOperator
    operand: Expression


@dataclass
class InfixExpr(Expression):
    left: Expression
    operator: InfixOperator
    right: Expression


@dataclass
class RangeExpr(Expression):
    """`start to end [step step]`"""
    start: Expression
    end: Expression
    step: Optional[Expression] = None


@dataclass
class MemberExpr(Expression):
    """Member access (e.g., size.width)."""
    object: Expression
    member: Identifier


@dataclass
class SubExpression(Expression):
    """A parenthesized expression."""
    expression: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Block(AstNode):
    """A brace-delimited list of statements."""
    statements: List["Statement"] = field(default_factory=list)


@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class CommandStatement(Statement):
    """`name [parameter]` - a command, property, block or constant."""
    identifier: Identifier
    parameter: Optional[Expression] = None


@dataclass
class BlockStatement(Statement):
    """`name { ... }` at statement level."""
    identifier: Identifier
    block: Block


@dataclass
class ExpressionStatement(Statement):
    expression: Expression


@dataclass
class ExpressionDefinition:
    """`define name expression`"""
    expression: Expression


@dataclass
class BlockDefinition:
    """`define name { ... }`"""
    block: Block


Definition = Union[ExpressionDefinition, BlockDefinition]


@dataclass
class DefineStatement(Statement):
    identifier: Identifier
    definition: Definition


@dataclass
class OptionStatement(Statement):
    """`option name default` - only meaningful inside a block definition."""
    identifier: Identifier
    expression: Expression


@dataclass
class ForStatement(Statement):
    """`for [name in] expression { ... }`"""
    identifier: Optional[Identifier]
    expression: Expression
    block: Block


@dataclass
class ImportStatement(Statement):
    expression: Expression


# =============================================================================
# Program
# =============================================================================

@dataclass
class Program:
    """A parsed program together with the source it was parsed from."""
    source: str
    statements: List[Statement] = field(default_factory=list)
