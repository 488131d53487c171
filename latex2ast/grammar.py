"""
Parser for LaTeX-flavored math notation.

Uses pyparsing to parse.  Main function is parse(), which turns a string
like '\\frac{1}{2}\\cdot x^{2}' into an expression tree (see expression.py).
"""

import re

from pyparsing import (
    Literal, Regex, ZeroOrMore, MatchFirst, Optional, Forward, Group, Empty,
    ParseResults, ParseBaseException, StringEnd, Suppress, replace_with
)
from functools import reduce

from .expression import (
    Atom, Integer, Decimal, Variable, Escape, EscapeKind,
    Negate, Factorial, Add, Subtract, Multiply, Divide, Power, Modulus,
    Function, Vector, Matrix, walk, RESERVED, FUNCTION_NAME,
)


#-----------------------------------------------------------------------------

DEFAULT_MAX_DEPTH = 20  # deepest allowed nesting of brackets
DEFAULT_MAX_LENGTH = 10000

OPENERS = "({[<"
CLOSERS = ")}]>"
CLOSING_DELIMITERS = (")", r"\right)", "}", r"\right}", "]", ">")

# Name given to the atom alternatives when reporting what was expected.
OPERAND = "operand"


class NotationError(Exception):
    """
    Base class for the errors raised while parsing notation.

    `position` is the index into `text` where the problem was found, if known.
    """
    def __init__(self, msg, position=None, text=None):
        if position is not None:
            msg = "{} (at position {})".format(msg, position)
        super().__init__(msg)
        self.position = position
        self.text = text


class NotationSyntaxError(NotationError):
    """
    No rule of the grammar matches.  `expected` lists what would have been
    accepted at `position`, the furthest point the parser reached.
    """
    def __init__(self, msg, position=None, text=None, expected=()):
        super().__init__(msg, position, text)
        self.expected = tuple(expected)


class UnbalancedDelimiter(NotationSyntaxError):
    """
    A bracket is never closed, or is closed without having been opened.
    """
    pass


class InvalidNumericLiteral(NotationError):
    """
    A number that is malformed or doesn't fit its 32-bit type.
    """
    pass


class EmptyArgumentList(NotationError):
    """
    A function call, vector or matrix row with nothing in it.
    """
    pass


class MatrixRowLengthMismatch(NotationError):
    """
    The rows of a matrix literal are not all the same length.
    """
    pass


class StackDepthExceeded(NotationError):
    """
    The input nests deeper than the parser is willing to go.
    """
    pass


class InputTooLong(NotationError):
    """
    The input is longer than the parser's `max_length`.
    """
    pass


class UndefinedVariable(NotationError):
    """
    Indicate when an expression uses a variable or function which was not
    expected.
    """
    pass


# The following few functions build the expression tree, and are run on lists
# of results from each parse component.  Operators arrive already converted
# into their node classes (see NotationParser.operator).

def fold_binary_operators(parse_result):
    """
    Combine operands pairwise, left to right.

    e.g. [ a, Subtract, b, Subtract, c ] -> Subtract(Subtract(a, b), c)
    """
    operands = parse_result[::2]
    operators = parse_result[1::2]
    return reduce(lambda acc, pair: pair[0](acc, pair[1]),
                  zip(operators, operands[1:]),
                  operands[0])


def build_prefix(parse_result):
    """
    [ Negate, a ] -> Negate(a)
    """
    operator, operand = parse_result
    return operator(operand)


def build_postfix(parse_result):
    """
    [ a ] -> a, and [ a, Factorial ] -> Factorial(a)
    """
    if len(parse_result) == 1:
        return parse_result[0]
    operand, operator = parse_result
    return operator(operand)


def build_function(parse_result):
    """
    Drop the backslash from macro-style names: \\sin(x) calls 'sin'.
    """
    name = parse_result[0]
    if name.startswith("\\"):
        name = name[1:]
    return Function(name, parse_result[1:])


def build_matrix(parse_result):
    """
    The rows were checked as they were parsed, so they are all the same length.
    """
    return Matrix.from_rows(parse_result)


BUILD_ACTIONS = {
    'number': lambda x: Atom(x[0]),
    'variable': lambda x: Atom(Variable(x[0])),
    'escape': lambda x: Atom(x[0]),
    'function': build_function,
    'vector': Vector,
    'row': list,
    'matrix': build_matrix,
    'frac': lambda x: Divide(x[0], x[1]),
    'parens': lambda x: x[0],
    'power': fold_binary_operators,
    'postfix': build_postfix,
    'negate': build_prefix,
    'product': fold_binary_operators,
    'sum': fold_binary_operators,
}


def numeric_value(text):
    """
    Turn the text of a number literal into an Integer or a Decimal.

    Raise ValueError if it isn't a valid literal, or doesn't fit.
    """
    if text.count(".") > 1 or not any(c.isdigit() for c in text):
        raise ValueError("'{}' is not a number".format(text))
    if "." in text:
        return Decimal(float(text))
    return Integer(int(text))


def delimiter_depth(math_expr, max_depth):
    """
    Return the index of the first opening bracket nested deeper than
    `max_depth`, or None if there isn't one.
    """
    depth = 0
    for loc, char in enumerate(math_expr):
        if char in OPENERS:
            depth += 1
            if depth > max_depth:
                return loc
        elif char in CLOSERS:
            depth = max(depth - 1, 0)
    return None


class NotationParser(object):
    """
    Holds the data for a particular parse.

    Retains the `math_expr` and the parse settings so they needn't be passed
    around method to method.  Eventually holds the parse tree, the position
    where parsing stopped, and the sets of variables, functions and escapes
    used.
    """
    def __init__(self, math_expr, parse_all=True, max_depth=None, max_length=None):
        """
        Create the NotationParser for a given math expression string.

        Do the parsing later, when called like `OBJ.parse_notation()`.

        parse_all  = (bool) if False, stop quietly at the first character
                     which can't continue the expression
        max_depth  = (int) deepest bracket nesting accepted
        max_length = (int) longest input accepted, in characters
        """
        self.math_expr = math_expr
        self.parse_all = parse_all
        self.max_depth = DEFAULT_MAX_DEPTH if max_depth is None else max_depth
        self.max_length = DEFAULT_MAX_LENGTH if max_length is None else max_length
        self.tree = None
        self.end = None
        self.variables_used = set()
        self.functions_used = set()
        self.escapes_used = set()

        # furthest point any part of the grammar failed at, and what it wanted there
        self.furthest_loc = -1
        self.furthest_expected = set()

    def track_failure(self, instring, loc, expr, err):
        """
        Fail action: remember what was expected at the furthest location tried.
        """
        if not isinstance(err, ParseBaseException):
            return
        if loc > self.furthest_loc:
            self.furthest_loc = loc
            self.furthest_expected = set()
        if loc == self.furthest_loc:
            self.furthest_expected.add(str(expr))

    def token(self, text):
        """
        Literal which reports itself by its own text when it is missing.
        """
        return Literal(text).set_name(text).set_fail_action(self.track_failure)

    def operator(self, text, node_type):
        """
        Literal for an operator; matching it yields the node class it builds.
        """
        return self.token(text).set_parse_action(replace_with(node_type))

    def convert_number(self, instring, loc, tokens):
        try:
            return numeric_value(tokens[0])
        except ValueError as err:
            raise InvalidNumericLiteral(str(err), loc, instring)

    def convert_escape(self, instring, loc, tokens):
        text = tokens[0]
        digits = text[2:].lstrip("0") or "0"
        # int() refuses digit runs over 4300 long
        if len(digits) > 3 or int(digits) > 255:
            shown = digits if len(digits) <= 10 else digits[:10] + "..."
            raise InvalidNumericLiteral("escape slot {} is outside 0-255".format(shown), loc, instring)
        return Escape(EscapeKind(text[1]), int(digits))

    def check_arguments(self, instring, loc, tokens):
        """
        A function call needs something between its parentheses.
        """
        if len(tokens[0]) < 2:
            raise EmptyArgumentList("function '{}' called with no arguments".format(tokens[0][0]),
                                    loc, instring)

    def check_vector(self, instring, loc, tokens):
        if not len(tokens[0]):
            raise EmptyArgumentList("empty vector", loc, instring)

    def check_matrix(self, instring, loc, tokens):
        """
        Every row must have something in it, and all rows the same length.
        """
        rows = tokens[0]
        for k, row in enumerate(rows):
            if not len(row):
                raise EmptyArgumentList("row {} of matrix is empty".format(k + 1), loc, instring)
        lengths = [len(row) for row in rows]
        if len(set(lengths)) > 1:
            raise MatrixRowLengthMismatch(
                "matrix rows have different lengths {}".format(lengths), loc, instring)

    def check_input(self):
        if len(self.math_expr) > self.max_length:
            raise InputTooLong("input is {} characters long, limit is {}".format(
                len(self.math_expr), self.max_length), self.max_length, self.math_expr)
        loc = delimiter_depth(self.math_expr, self.max_depth)
        if loc is not None:
            raise StackDepthExceeded("brackets nested deeper than {}".format(self.max_depth),
                                     loc, self.math_expr)

    def mark_end(self, instring, loc, tokens):
        self.end = loc

    def parse_notation(self):
        """
        Parse the math notation into a tree.

        Store a `pyparsing.ParseResults` in `self.tree`, with groups named for
        the kind of node they become.  Operators are already replaced by node
        classes; everything else is left for `reduce_tree`.

        For debugging, use something like
          print(OBJ.tree.dump())
        """
        self.check_input()
        token = self.token
        operator = self.operator

        # Predefine recursive expressions.
        expr = Forward()
        power = Forward()
        unary = Forward()

        lpar = Literal(r"\left(") | Literal("(")
        rpar = token(r"\right)") | token(")")
        lbrace = Literal(r"\left{") | Literal("{")
        rbrace = token(r"\right}") | token("}")
        arguments = expr + ZeroOrMore(Suppress(token(",")) + expr)

        # (a+b) or {a+b} or \left(a+b\right)
        parens = Group(Suppress(lpar) + expr + Suppress(rpar) |
                       Suppress(lbrace) + expr + Suppress(rbrace))("parens")

        # \frac{a}{b}
        frac = Group(Suppress(Literal(r"\frac")) +
                     Suppress(token("{")) + expr + Suppress(token("}")) +
                     Suppress(token("{")) + expr + Suppress(token("}")))("frac")

        # <1,2,3>
        vector = Group(Suppress(Literal("<")) + Optional(arguments) + Suppress(token(">")))("vector")
        vector.set_parse_action(self.check_vector)

        # [1,2;3,4]
        row = Group(Optional(arguments))("row")
        matrix = Group(Suppress(Literal("[")) + row + ZeroOrMore(Suppress(token(";")) + row) +
                       Suppress(token("]")))("matrix")
        matrix.set_parse_action(self.check_matrix)

        # 7 or 0.33 or .5; no sign, that is the job of unary minus
        inner_number = Regex(r"[0-9.]+").set_name("number")
        inner_number.set_parse_action(self.convert_number)
        number = Group(inner_number)("number")

        # sin(x) or \sin\left(x\right) or f(a,b)
        function_name = Regex(r"\\?" + FUNCTION_NAME).set_name("function name")
        function = Group(function_name + Suppress(lpar) + Optional(arguments) + Suppress(rpar))("function")
        function.set_parse_action(self.check_arguments)

        # _A3 or _*0
        inner_escape = Regex(r"_[AFVM*][0-9]+").set_name("escape")
        inner_escape.set_parse_action(self.convert_escape)
        escape = Group(inner_escape)("escape")

        # last resort: any other single character
        variable = Group(Regex(r"[^\s%s]" % re.escape(RESERVED)))("variable")

        atom = MatchFirst([parens, frac, vector, matrix, number, function, escape, variable])
        atom.set_name(OPERAND).set_fail_action(self.track_failure)

        # Do the following in the correct order to preserve order of operation.
        # 2^3^4 is 2^(3^4), so the exponent recurses instead of repeating.
        bang = operator("!", Factorial)
        power <<= Group(atom + Optional(operator("^", Power) +
                                        Group(power + Optional(bang))("postfix")))("power")

        # -a! is -(a!), and -a^2 is -(a^2)
        unary <<= (Group(Literal("-").set_parse_action(replace_with(Negate)) + unary)("negate") |
                   Group(power + Optional(bang))("postfix"))

        mul_op = operator(r"\cdot", Multiply) | operator("/", Divide) | operator("%", Modulus)
        prod_term = Group(unary + ZeroOrMore(mul_op + unary))("product")  # 7 \cdot 5 / 4

        add_op = operator("+", Add) | operator("-", Subtract)
        sum_term = Group(prod_term + ZeroOrMore(add_op + prod_term))("sum")  # -5 + 4 - 3

        # Finish the recursion.
        expr <<= sum_term

        end_marker = Empty().set_parse_action(self.mark_end)
        if self.parse_all:
            end_marker = end_marker + StringEnd().set_name("end of text").set_fail_action(self.track_failure)
        notation = (expr + end_marker).parse_with_tabs()

        try:
            self.tree = notation.parse_string(self.math_expr)[0]
        except ParseBaseException as err:
            raise self.syntax_error(err)
        except RecursionError:
            raise StackDepthExceeded("expression nested too deeply to parse",
                                     max(self.furthest_loc, 0), self.math_expr)

    def syntax_error(self, err):
        """
        Turn a pyparsing failure into a NotationSyntaxError, reporting the
        furthest position any rule reached rather than where backtracking
        finally gave up.
        """
        if self.furthest_loc >= err.loc:
            loc = self.furthest_loc
            expected = sorted(self.furthest_expected)
        else:  # pragma: no cover
            loc = err.loc
            expected = []
        rest = self.math_expr[loc:]
        found = "'{}'".format(rest[0]) if rest else "end of text"
        msg = "Expected {}, found {}".format(" or ".join(expected) or "something else", found)

        closer_expected = any(name in CLOSING_DELIMITERS for name in expected)
        if (not rest and closer_expected) or (rest.startswith(CLOSING_DELIMITERS) and OPERAND not in expected):
            return UnbalancedDelimiter("Unbalanced delimiter: " + msg, loc, self.math_expr, expected)
        return NotationSyntaxError(msg, loc, self.math_expr, expected)

    def reduce_tree(self, handle_actions, terminal_converter=None):
        """
        Call `handle_actions` recursively on `self.tree` and return result.

        `handle_actions` is a dictionary of node names (e.g. 'product', 'sum',
        etc&) to functions. These functions are of the following form:
         -input: a list of processed child nodes. If it includes any terminal
          nodes in the list, they will be given as their processed forms also.
         -output: whatever to be passed to the level higher, and what to
          return for the final node.
        `terminal_converter` is a function that takes in a token and returns a
        processed form. The default of `None` just leaves them as they are.
        """
        def handle_node(node):
            """
            Return the result representing the node, using recursion.

            Call the appropriate `handle_action` for this node. As its inputs,
            feed it the output of `handle_node` for each child node.
            """
            if not isinstance(node, ParseResults):
                # Then treat it as a terminal node.
                if terminal_converter is None:
                    return node
                else:
                    return terminal_converter(node)

            node_name = node.get_name()
            if node_name not in handle_actions:  # pragma: no cover
                raise Exception("Unknown branch name '{}'".format(node_name))

            action = handle_actions[node_name]
            handled_kids = [handle_node(k) for k in node]
            return action(handled_kids)

        # Find the value of the entire tree.
        return handle_node(self.tree)

    def build_expression(self):
        """
        Turn the parse tree into an expression tree, and note which variables,
        functions and escapes it uses.
        """
        expression = self.reduce_tree(BUILD_ACTIONS)
        for node in walk(expression):
            if isinstance(node, Function):
                self.functions_used.add(node.name)
            elif isinstance(node, Atom) and isinstance(node.value, Variable):
                self.variables_used.add(node.value.name)
            elif isinstance(node, Atom) and isinstance(node.value, Escape):
                self.escapes_used.add(node.value)
        return expression

    def check_variables(self, valid_variables, valid_functions):
        """
        Confirm that all the variables and functions used in the tree are
        valid/defined.

        Otherwise, raise an UndefinedVariable containing all bad names.
        """
        bad_vars = set(var for var in self.variables_used
                       if var not in valid_variables)
        bad_vars.update(func for func in self.functions_used
                        if func not in valid_functions)

        if bad_vars:
            raise UndefinedVariable(' '.join(sorted(bad_vars)), text=self.math_expr)


#-----------------------------------------------------------------------------

def parse(math_expr, parse_all=True, max_depth=None, max_length=None):
    """
    Parse a string of math notation and return its expression tree.

    Raise a NotationError subclass if it can't be parsed.  With
    parse_all=False, anything after the longest parseable prefix is ignored.
    """
    math_interpreter = NotationParser(math_expr, parse_all=parse_all,
                                      max_depth=max_depth, max_length=max_length)
    math_interpreter.parse_notation()
    return math_interpreter.build_expression()


def parse_prefix(math_expr, max_depth=None, max_length=None):
    """
    Parse as much of `math_expr` as forms an expression.

    Return (expression, end), where `end` is the index of the first character
    not used (trailing whitespace is skipped).
    """
    math_interpreter = NotationParser(math_expr, parse_all=False,
                                      max_depth=max_depth, max_length=max_length)
    math_interpreter.parse_notation()
    return math_interpreter.build_expression(), math_interpreter.end
