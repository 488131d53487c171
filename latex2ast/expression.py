"""
Expression trees produced by the grammar and consumed by the renderer.

Every node is a frozen dataclass; children are held in tuples, so a tree
can't be changed once built.  Transformations build new trees.
"""

import enum
import re

from dataclasses import dataclass
from typing import Tuple, Union

import numpy


# Characters which belong to the notation itself.  Anything else that is not
# whitespace, a digit or a point may be used as a one-letter variable.
RESERVED = "+-^!/%,;(){}[]<>\\_"
NUMBER_CHARS = "0123456789."

# Function names, without the optional leading backslash.
FUNCTION_NAME = r"[^\W\d_][^\W_]*"


#-----------------------------------------------------------------------------
# Leaf payloads

@dataclass(frozen=True)
class Integer:
    """A 32-bit signed integer literal."""

    value: int

    def __post_init__(self):
        if not isinstance(self.value, (int, numpy.integer)) or isinstance(self.value, bool):
            raise ValueError("Integer needs an integral value, got {!r}".format(self.value))
        info = numpy.iinfo(numpy.int32)
        if not info.min <= int(self.value) <= info.max:
            raise ValueError("{} does not fit in a 32-bit integer".format(self.value))
        object.__setattr__(self, "value", numpy.int32(self.value))

    def __repr__(self):
        return "Integer({})".format(int(self.value))


@dataclass(frozen=True)
class Decimal:
    """
    A 32-bit float literal.  Anything written with a decimal point is one of
    these, whatever its magnitude.
    """

    value: float

    def __post_init__(self):
        value = float(self.value)
        if not abs(value) <= numpy.finfo(numpy.float32).max:
            raise ValueError("{} is not a finite 32-bit float".format(self.value))
        object.__setattr__(self, "value", numpy.float32(value))

    def __repr__(self):
        return "Decimal({})".format(self.value)


Numeric = Union[Integer, Decimal]


@dataclass(frozen=True)
class Variable:
    """
    A one-character variable name: x, y, α, ...  Digits, the point and the
    notation's own punctuation are not variables.
    """

    name: str

    def __post_init__(self):
        if not isinstance(self.name, str) or len(self.name) != 1 or self.name.isspace():
            raise ValueError("a variable is a single non-blank character, got {!r}".format(self.name))
        if self.name in RESERVED or self.name in NUMBER_CHARS:
            raise ValueError("'{}' can't be used as a variable".format(self.name))

    def __str__(self):
        return self.name


class EscapeKind(enum.Enum):
    """
    Which syntactic category an escape placeholder stands for.  The value is
    the letter used in the notation, e.g. the A in _A3.
    """
    ATOM = "A"
    FUNCTION = "F"
    VECTOR = "V"
    MATRIX = "M"
    EVERYTHING = "*"


@dataclass(frozen=True)
class Escape:
    """
    A numbered hole of some syntactic category, for a downstream pattern
    matcher to fill in.  It has no value of its own.
    """

    kind: EscapeKind
    slot: int

    def __post_init__(self):
        if not isinstance(self.kind, EscapeKind):
            object.__setattr__(self, "kind", EscapeKind(self.kind))
        if not isinstance(self.slot, (int, numpy.integer)) or isinstance(self.slot, bool):
            raise ValueError("escape slot must be an integer, got {!r}".format(self.slot))
        object.__setattr__(self, "slot", int(self.slot))
        if not 0 <= self.slot <= 255:
            raise ValueError("escape slot {} is outside 0-255".format(self.slot))

    def __str__(self):
        return "_{}{}".format(self.kind.value, self.slot)


#-----------------------------------------------------------------------------
# Tree nodes

class Expression(object):
    """
    Base class for expression tree nodes.
    """

    def children(self):
        """
        Return the direct sub-expressions, in order.
        """
        return ()


@dataclass(frozen=True)
class Atom(Expression):
    """
    A leaf.  Numbers in atoms are never negative (nor -0.0): the notation
    has no signed literals, so -3 is Negate(Atom(3)).
    """

    value: Union[Integer, Decimal, Variable, Escape]

    def __post_init__(self):
        if not isinstance(self.value, (Integer, Decimal, Variable, Escape)):
            raise ValueError("cannot make an atom out of {!r}".format(self.value))
        if isinstance(self.value, (Integer, Decimal)) and numpy.signbit(self.value.value):
            raise ValueError("{!r} is negative; use Negate".format(self.value))


@dataclass(frozen=True)
class UnaryOperation(Expression):
    operand: Expression

    def children(self):
        return (self.operand,)


@dataclass(frozen=True)
class Negate(UnaryOperation):
    pass


@dataclass(frozen=True)
class Factorial(UnaryOperation):
    pass


@dataclass(frozen=True)
class Percent(UnaryOperation):
    pass


@dataclass(frozen=True)
class BinaryOperation(Expression):
    left: Expression
    right: Expression

    def children(self):
        return (self.left, self.right)


@dataclass(frozen=True)
class Add(BinaryOperation):
    pass


@dataclass(frozen=True)
class Subtract(BinaryOperation):
    pass


@dataclass(frozen=True)
class Multiply(BinaryOperation):
    pass


@dataclass(frozen=True)
class Divide(BinaryOperation):
    pass


@dataclass(frozen=True)
class Power(BinaryOperation):
    pass


@dataclass(frozen=True)
class Modulus(BinaryOperation):
    pass


@dataclass(frozen=True)
class Function(Expression):
    """A call such as f(x, y); there is no such thing as a zero-argument call."""

    name: str
    args: Tuple[Expression, ...]

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))
        if not isinstance(self.name, str) or not re.fullmatch(FUNCTION_NAME, self.name):
            raise ValueError("{!r} is not a function name".format(self.name))
        if not self.args:
            raise ValueError("function {} needs at least one argument".format(self.name))

    def children(self):
        return self.args


@dataclass(frozen=True)
class Vector(Expression):
    backing: Tuple[Expression, ...]

    def __post_init__(self):
        object.__setattr__(self, "backing", tuple(self.backing))
        if not self.backing:
            raise ValueError("a vector needs at least one element")

    @property
    def size(self):
        return len(self.backing)

    def children(self):
        return self.backing


@dataclass(frozen=True)
class Matrix(Expression):
    """
    A rows x cols literal.  `backing` holds the elements row by row.
    """

    shape: Tuple[int, int]
    backing: Tuple[Expression, ...]

    def __post_init__(self):
        object.__setattr__(self, "shape", tuple(self.shape))
        object.__setattr__(self, "backing", tuple(self.backing))
        rows, cols = self.shape
        if rows < 1 or cols < 1:
            raise ValueError("matrix shape {} has an empty dimension".format(self.shape))
        if rows * cols != len(self.backing):
            raise ValueError("matrix shape {} does not match {} elements".format(
                self.shape, len(self.backing)))

    @classmethod
    def from_rows(cls, rows):
        """
        Build a matrix from a list of rows, each a list of expressions.
        """
        rows = [tuple(row) for row in rows]
        if not rows:
            raise ValueError("a matrix needs at least one row")
        cols = len(rows[0])
        if any(len(row) != cols for row in rows):
            raise ValueError("matrix rows have different lengths: {}".format(
                [len(row) for row in rows]))
        return cls((len(rows), cols), [elem for row in rows for elem in row])

    def rows(self):
        cols = self.shape[1]
        return [self.backing[k:k + cols] for k in range(0, len(self.backing), cols)]

    def children(self):
        return self.backing


#-----------------------------------------------------------------------------
# Builders

def num(value):
    """
    Atom for a number: ints become Integer, floats become Decimal.  Negative
    values are refused, as for Atom.
    """
    if isinstance(value, (float, numpy.floating)):
        return Atom(Decimal(value))
    return Atom(Integer(value))


def var(name):
    return Atom(Variable(name))


def escape(kind, slot):
    """
    Atom for an escape placeholder.  `kind` may be an EscapeKind or its
    letter, e.g. escape("F", 2) is _F2.
    """
    return Atom(Escape(EscapeKind(kind), slot))


#-----------------------------------------------------------------------------
# Traversal

def walk(expr):
    """
    Yield every node of the tree, parents before children.
    """
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children()))


def reduce_expression(expr, handle_actions):
    """
    Fold the tree bottom up and return the result for the root.

    `handle_actions` maps node types to functions called as
    action(node, handled_kids), where handled_kids are the results already
    computed for node.children().  Uses an explicit stack, so a tree can be
    deeper than the interpreter's recursion limit.
    """
    results = []
    stack = [(expr, False)]
    while stack:
        node, kids_done = stack.pop()
        kids = node.children()
        if not kids_done:
            stack.append((node, True))
            stack.extend((kid, False) for kid in reversed(kids))
            continue

        action = handle_actions.get(type(node))
        if action is None:  # pragma: no cover
            raise Exception("Unknown node type '{}'".format(type(node).__name__))
        split = len(results) - len(kids)
        handled_kids = results[split:]
        del results[split:]
        results.append(action(node, handled_kids))
    return results[0]
