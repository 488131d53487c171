from .expression import (
    Integer, Decimal, Variable, Escape, EscapeKind,
    Expression, Atom, Negate, Factorial, Percent,
    Add, Subtract, Multiply, Divide, Power, Modulus,
    Function, Vector, Matrix,
    num, var, escape, walk, reduce_expression,
)
from .grammar import (
    NotationParser, parse, parse_prefix,
    NotationError, NotationSyntaxError, UnbalancedDelimiter, InvalidNumericLiteral,
    EmptyArgumentList, MatrixRowLengthMismatch, StackDepthExceeded, InputTooLong,
    UndefinedVariable,
)
from .render import render
