from latex2ast.expression import (
    Negate, Factorial, Percent, Add, Subtract, Multiply, Divide, Power, Modulus,
    Function, Vector, Matrix, num, var, escape,
)
from latex2ast.grammar import parse
from latex2ast.render import render, render_number, LatexRendered

#-----------------------------------------------------------------------------
# unit tests

import unittest

a, b, c = var("a"), var("b"), var("c")

class Test_render(unittest.TestCase):

    def test_atoms(self):
        assert render(num(42)) == "42"
        assert render(Negate(num(3))) == "-3"
        assert render(a) == "a"
        assert render(escape("A", 3)) == "_A3"
        assert render(escape("*", 0)) == "_*0"

    def test_decimals(self):
        assert render(num(0.5)) == "0.5"
        assert render(num(3.0)) == "3.0"
        assert render(num(0.1)) == "0.1"
        assert render(num(1234.5)) == "1234.5"

    def test_unary(self):
        assert render(Negate(a)) == "-a"
        assert render(Factorial(num(3))) == "3!"
        assert render(Percent(num(5))) == "5%"
        assert render(Negate(Add(a, b))) == r"-\left(a+b\right)"
        assert render(Factorial(Power(a, b))) == r"\left(a^b\right)!"
        assert render(Negate(Negate(a))) == r"-\left(-a\right)"

    def test_sums(self):
        assert render(Add(Add(a, b), c)) == "a+b+c"
        assert render(Subtract(Subtract(a, b), c)) == "a-b-c"
        assert render(Subtract(a, Subtract(b, c))) == r"a-\left(b-c\right)"
        assert render(Add(a, Subtract(b, c))) == r"a+\left(b-c\right)"
        assert render(Subtract(a, Negate(b))) == "a--b"

    def test_products(self):
        assert render(Multiply(Add(a, b), c)) == r"\left(a+b\right)\cdotc"
        assert render(Multiply(a, Multiply(b, c))) == r"a\cdot\left(b\cdotc\right)"
        assert render(Multiply(Multiply(a, b), c)) == r"a\cdotb\cdotc"
        assert render(Multiply(Modulus(a, b), c)) == r"\left(a%b\right)\cdotc"

    def test_modulus(self):
        assert render(Modulus(a, b)) == "a%b"
        assert render(Modulus(Add(a, b), c)) == r"\left(a+b\right)%c"
        assert render(Modulus(a, Multiply(b, c))) == r"a%\left(b\cdotc\right)"
        assert render(Modulus(a, Modulus(b, c))) == r"a%\left(b%c\right)"
        assert render(Modulus(Multiply(a, b), c)) == r"a\cdotb%c"

    def test_frac(self):
        assert render(Divide(Add(a, b), c)) == r"\frac{a+b}{c}"
        assert render(Divide(Divide(a, b), c)) == r"\frac{\frac{a}{b}}{c}"

    def test_power(self):
        assert render(Power(a, num(2))) == "a^2"
        assert render(Power(a, Add(b, c))) == "a^{b+c}"
        assert render(Power(Add(a, b), num(2))) == r"\left(a+b\right)^2"
        assert render(Power(Divide(num(1), num(2)), num(2))) == r"\left(\frac{1}{2}\right)^2"
        assert render(Power(a, Negate(num(1)))) == "a^{-1}"
        assert render(Power(a, Power(b, c))) == "a^{b^c}"
        assert render(Power(Function("f", [a]), num(2))) == r"f\left(a\right)^2"

    def test_collections(self):
        assert render(Function("arc", [num(6)])) == r"arc\left(6\right)"
        assert render(Function("f", [a, Add(b, c)])) == r"f\left(a,b+c\right)"
        assert render(Vector([num(1), num(2), num(3)])) == "<1,2,3>"
        m = Matrix.from_rows([[num(1), num(2)], [num(3), num(4)]])
        assert render(m) == "[1,2;3,4]"
        assert render(Matrix((1, 1), [a])) == "[a]"

    def test_full_formula(self):
        expr = parse(r"\frac{5}{6}\cdot5+\left(4^{2+x}\right)-1!+arc\left(6\right)")
        assert render(expr) == r"\frac{5}{6}\cdot5+4^{2+x}-1!+arc\left(6\right)"

    def test_deep_tree(self):
        expr = a
        for k in range(500):
            expr = Negate(expr)
        latex = render(expr)
        assert latex.startswith(r"-\left(-\left(")
        assert latex.count(r"\right)") == 499

    def test_render_number(self):
        assert render_number(num(7).value) == "7"
        assert render_number(num(2.5).value) == "2.5"

    def test_latex_rendered(self):
        x = LatexRendered("a+b", parens="(")
        assert x.latex == r"\left(a+b\right)"
        assert x.sans_parens == "a+b"
        assert x.wrap("{").latex == "{a+b}"
        with self.assertRaises(Exception):
            LatexRendered("a", parens="[")


class Test_round_trip(unittest.TestCase):

    def check(self, expr):
        latex = render(expr)
        print(latex)
        assert parse(latex) == expr

    def test_operator_trees(self):
        trees = [
            Subtract(a, Subtract(b, c)),
            Subtract(Subtract(a, b), c),
            Add(a, Add(b, c)),
            Multiply(a, Multiply(b, c)),
            Modulus(a, Modulus(b, c)),
            Modulus(Modulus(a, b), c),
            Modulus(a, Multiply(b, c)),
            Multiply(Modulus(a, b), c),
            Multiply(a, Modulus(b, c)),
            Divide(Subtract(a, b), Modulus(b, c)),
            Multiply(Divide(a, b), c),
            Power(Power(a, b), c),
            Power(a, Power(b, c)),
            Power(a, Factorial(b)),
            Factorial(Power(a, b)),
            Negate(Power(a, b)),
            Power(Negate(a), b),
            Negate(Factorial(a)),
            Factorial(Negate(a)),
            Negate(Negate(a)),
            Subtract(a, Negate(b)),
            Multiply(a, Negate(b)),
        ]
        for expr in trees:
            self.check(expr)

    def test_leaf_trees(self):
        trees = [
            Add(num(0.5), num(2)),
            Power(num(1.25), escape("A", 3)),
            Function("sin", [Add(a, num(1)), escape("F", 0)]),
            Vector([Add(a, b), Vector([c])]),
            Matrix.from_rows([[a, Subtract(b, c)], [Negate(a), num(4)]]),
            Power(Vector([a, b]), num(2)),
            Power(Matrix((1, 1), [a]), num(2)),
        ]
        for expr in trees:
            self.check(expr)

    def test_negative_numbers(self):
        assert render(Power(Negate(num(3)), num(2))) == r"\left(-3\right)^2"
        assert render(Factorial(Negate(num(3)))) == r"\left(-3\right)!"
        trees = [
            Power(Negate(num(3)), num(2)),
            Factorial(Negate(num(3))),
            Multiply(num(2), Power(Negate(num(1.5)), var("x"))),
            Subtract(a, Negate(num(2))),
        ]
        for expr in trees:
            self.check(expr)

    def test_parsed_text(self):
        for text in [r"1-\left(2-3\right)", r"\left(a+b\right)\cdot\left(a-b\right)",
                     r"\frac{x^2}{2}+f\left(x,y\right)", r"[1,2;3,4]^{-1}"]:
            assert render(parse(text)) == text
