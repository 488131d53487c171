import numpy
from latex2ast.expression import (
    Integer, Decimal, Variable, Escape, EscapeKind, Atom,
    Negate, Factorial, Add, Subtract, Multiply, Power,
    Function, Vector, Matrix, num, var, escape, walk, reduce_expression,
)

#-----------------------------------------------------------------------------
# unit tests

import unittest

class Test_leaves(unittest.TestCase):

    def test_integer(self):
        x = Integer(7)
        assert x.value == 7
        assert isinstance(x.value, numpy.int32)
        assert Integer(-2147483648).value == -2147483648
        assert Integer(2147483647) == Integer(2147483647)
        assert repr(x) == "Integer(7)"

    def test_integer_range(self):
        with self.assertRaises(ValueError):
            Integer(2147483648)
        with self.assertRaises(ValueError):
            Integer(-2147483649)
        with self.assertRaises(ValueError):
            Integer(True)
        with self.assertRaises(ValueError):
            Integer(1.5)

    def test_decimal(self):
        x = Decimal(0.5)
        assert isinstance(x.value, numpy.float32)
        assert x == Decimal(0.5)
        assert Decimal(3) == Decimal(3.0)
        with self.assertRaises(ValueError):
            Decimal(1e39)
        with self.assertRaises(ValueError):
            Decimal(float("nan"))

    def test_variable(self):
        assert str(Variable("x")) == "x"
        assert Variable("α").name == "α"
        with self.assertRaises(ValueError):
            Variable("xy")
        with self.assertRaises(ValueError):
            Variable(" ")
        for name in ["1", "0", ".", "+", "_", "\\", "(", "<", ";"]:
            with self.assertRaises(ValueError):
                Variable(name)

    def test_escape(self):
        e = Escape(EscapeKind.FUNCTION, 2)
        assert str(e) == "_F2"
        assert Escape("*", 0).kind == EscapeKind.EVERYTHING
        assert Escape("A", 255) == Escape(EscapeKind.ATOM, 255)
        with self.assertRaises(ValueError):
            Escape(EscapeKind.ATOM, 256)
        with self.assertRaises(ValueError):
            Escape("Q", 1)
        with self.assertRaises(ValueError):
            Escape("A", 3.5)
        with self.assertRaises(ValueError):
            Escape("A", True)
        assert Escape("A", numpy.int32(7)).slot == 7
        assert str(Escape("A", numpy.int32(7))) == "_A7"


class Test_nodes(unittest.TestCase):

    def test_structural_equality(self):
        assert Add(num(1), var("x")) == Add(num(1), var("x"))
        assert Add(num(1), var("x")) != Subtract(num(1), var("x"))
        assert Negate(var("x")) != Factorial(var("x"))
        assert num(1) != num(1.0)
        assert hash(Add(num(1), num(2))) == hash(Add(num(1), num(2)))

    def test_immutable(self):
        expr = Add(num(1), num(2))
        with self.assertRaises(AttributeError):
            expr.left = num(3)
        f = Function("f", [num(1)])
        assert isinstance(f.args, tuple)

    def test_atom_payload(self):
        with self.assertRaises(ValueError):
            Atom(3)
        assert escape("V", 4) == Atom(Escape(EscapeKind.VECTOR, 4))

    def test_no_negative_numbers(self):
        assert num(0).value == Integer(0)
        assert num(0.0).value == Decimal(0.0)
        for value in [-3, -1.5, -0.0, -2147483648]:
            with self.assertRaises(ValueError):
                num(value)
        with self.assertRaises(ValueError):
            Atom(Integer(-1))
        assert Negate(num(3)).operand == num(3)

    def test_function(self):
        f = Function("f", [num(1), var("y")])
        assert f.children() == (num(1), var("y"))
        with self.assertRaises(ValueError):
            Function("f", [])
        with self.assertRaises(ValueError):
            Function("", [num(1)])
        assert Function("log2", [num(1)]).name == "log2"
        assert Function("φ", [num(1)]).name == "φ"
        for name in ["2x", "\\sin", "f g", "f_1", "f'", None]:
            with self.assertRaises(ValueError):
                Function(name, [num(1)])

    def test_vector(self):
        v = Vector([num(1), num(2), num(3)])
        assert v.size == 3
        assert v.size == len(v.backing)
        with self.assertRaises(ValueError):
            Vector([])

    def test_matrix(self):
        m = Matrix.from_rows([[num(1), num(2)], [num(3), num(4)]])
        assert m.shape == (2, 2)
        assert m.backing == (num(1), num(2), num(3), num(4))
        assert m.rows() == [(num(1), num(2)), (num(3), num(4))]
        assert m == Matrix((2, 2), [num(1), num(2), num(3), num(4)])

    def test_matrix_invariants(self):
        with self.assertRaises(ValueError):
            Matrix((2, 2), [num(1), num(2), num(3)])
        with self.assertRaises(ValueError):
            Matrix((0, 0), [])
        with self.assertRaises(ValueError):
            Matrix.from_rows([[num(1), num(2)], [num(3)]])
        with self.assertRaises(ValueError):
            Matrix.from_rows([])


class Test_traversal(unittest.TestCase):

    def test_walk(self):
        expr = Add(num(1), Multiply(num(2), var("x")))
        nodes = list(walk(expr))
        assert nodes == [expr, num(1), Multiply(num(2), var("x")), num(2), var("x")]

    def test_reduce_expression(self):
        expr = Power(var("a"), Function("f", [num(1), num(2)]))
        actions = {
            Atom: lambda node, kids: 1,
            Power: lambda node, kids: sum(kids) + 1,
            Function: lambda node, kids: sum(kids) + 1,
        }
        assert reduce_expression(expr, actions) == 5

    def test_reduce_deep_tree(self):
        expr = var("x")
        for k in range(5000):
            expr = Negate(expr)
        actions = {
            Atom: lambda node, kids: 0,
            Negate: lambda node, kids: kids[0] + 1,
        }
        assert reduce_expression(expr, actions) == 5000
        assert sum(1 for node in walk(expr)) == 5001
