"""
Render expression trees back into math notation.

Main function is render().  Output uses as few parentheses as it can while
still parsing back (with grammar.parse) to an equal tree.
"""

import numpy

from .expression import (
    Atom, Integer, Decimal, Negate, Factorial, Percent,
    Add, Subtract, Multiply, Divide, Power, Modulus,
    Function, Vector, Matrix, reduce_expression,
)


class LatexRendered(object):
    """
    Data structure to hold a typeset representation of some math.

    Fields:
     -`latex` is the generated notation.
     -`sans_parens` is the same as `latex` except without the wrapping
      added by `parens` (if any).
    """
    def __init__(self, latex, parens=None):
        """
        Instantiate with the latex representing the math.

        Optionally include parenthesis to wrap around it.  `parens` must be
        '(' for \\left( \\right) or '{' for a plain group.
        """
        self.latex = latex
        self.sans_parens = latex

        # Generate parens and overwrite `self.latex`.
        if parens is not None:
            pairs = {'(': (r"\left(", r"\right)"),
                     '{': ("{", "}")}
            if parens not in pairs:
                raise Exception(
                    "Unknown parenthesis '{}': coder error".format(parens)
                )
            left_parens, right_parens = pairs[parens]

            self.latex = "{left}{expr}{right}".format(
                left=left_parens,
                expr=latex,
                right=right_parens
            )

    def wrap(self, parens='('):
        return LatexRendered(self.sans_parens, parens=parens)

    def __repr__(self):  # pragma: no cover
        return '<"{}">'.format(self.latex)


# Which children need wrapping, by the kind of node they are.  This mirrors
# the grammar: sums bind loosest, then products and modulus, then unary minus,
# then factorial and powers; atoms, calls, vectors and matrices delimit
# themselves.
ADDITIVE = (Add, Subtract)
LOOSER_THAN_PRODUCT = (Add, Subtract, Modulus)
SELF_DELIMITING = (Atom, Function, Vector, Matrix)


def parenthesize(kid, child, kinds):
    """
    Wrap the rendered `kid` in \\left( \\right) if `child` is one of `kinds`.
    """
    if isinstance(child, kinds):
        return kid.wrap('(').latex
    return kid.latex


def render_number(number):
    """
    Integers as they are; decimals positionally, always with a point, using the
    shortest digits that give back the same 32-bit float.
    """
    if isinstance(number, Integer):
        return str(int(number.value))
    return numpy.format_float_positional(number.value, trim='0')


def render_atom(node, children):
    if isinstance(node.value, (Integer, Decimal)):
        return LatexRendered(render_number(node.value))
    return LatexRendered(str(node.value))


UNARY_SUFFIXES = {
    Factorial: "!",
    Percent: "%",
}


def render_unary(node, children):
    """
    -a, a! and a%; anything more than a bare atom gets parentheses.
    """
    inner = children[0].latex
    if not isinstance(node.operand, Atom):
        inner = children[0].wrap('(').latex
    if isinstance(node, Negate):
        return LatexRendered("-" + inner)
    return LatexRendered(inner + UNARY_SUFFIXES[type(node)])


def render_sum(node, children):
    """
    a+b and a-b.  Both are left associative, so a sum or difference on the
    right needs parentheses: a-(b-c) is not a-b-c.
    """
    left, right = children
    op = "+" if isinstance(node, Add) else "-"
    return LatexRendered(left.latex + op + parenthesize(right, node.right, ADDITIVE))


def render_modulus(node, children):
    left, right = children
    latex = "{}%{}".format(
        parenthesize(left, node.left, ADDITIVE),
        parenthesize(right, node.right, ADDITIVE + (Multiply, Modulus)),
    )
    return LatexRendered(latex)


def render_product(node, children):
    r"""
    Join with '\cdot', wrapping sums and moduli on either side, and products
    on the right.

    Examples:
      2*(3+4) -> '2\cdot\left(3+4\right)'
      (2*3)*4 -> '2\cdot3\cdot4'
      2*(3*4) -> '2\cdot\left(3\cdot4\right)'
    """
    left, right = children
    latex = r"{}\cdot{}".format(
        parenthesize(left, node.left, LOOSER_THAN_PRODUCT),
        parenthesize(right, node.right, LOOSER_THAN_PRODUCT + (Multiply,)),
    )
    return LatexRendered(latex)


def render_frac(node, children):
    r"""
    Division is always a '\frac', which needs no parentheses around its parts.
    """
    numerator, denominator = children
    latex = r"\frac{{{num}}}{{{den}}}".format(num=numerator.latex, den=denominator.latex)
    return LatexRendered(latex)


def render_power(node, children):
    """
    Wrap the base unless it delimits itself, and put the exponent in curly
    braces unless it is a single atom: 'a^2', 'a^{b+c}', '\\left(a+b\\right)^2'.
    """
    base, exponent = children
    if not isinstance(node.left, SELF_DELIMITING):
        base = base.wrap('(')
    if not isinstance(node.right, Atom):
        exponent = exponent.wrap('{')
    return LatexRendered("{}^{}".format(base.latex, exponent.latex))


def render_function(node, children):
    args = ",".join(k.latex for k in children)
    return LatexRendered(r"{name}\left({args}\right)".format(name=node.name, args=args))


def render_vector(node, children):
    return LatexRendered("<{}>".format(",".join(k.latex for k in children)))


def render_matrix(node, children):
    """
    '[a,b;c,d]' for a 2x2 matrix; commas within a row, semicolons between rows.
    """
    cols = node.shape[1]
    rows = [children[k:k + cols] for k in range(0, len(children), cols)]
    latex = ";".join(",".join(k.latex for k in row) for row in rows)
    return LatexRendered("[{}]".format(latex))


RENDER_ACTIONS = {
    Atom: render_atom,
    Negate: render_unary,
    Factorial: render_unary,
    Percent: render_unary,
    Add: render_sum,
    Subtract: render_sum,
    Modulus: render_modulus,
    Multiply: render_product,
    Divide: render_frac,
    Power: render_power,
    Function: render_function,
    Vector: render_vector,
    Matrix: render_matrix,
}


def render(expr):
    """
    Convert an expression tree into math notation.
    """
    output = reduce_expression(expr, RENDER_ACTIONS)
    return output.latex
