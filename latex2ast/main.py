#!/usr/bin/env python

import sys
import argparse
from importlib import metadata
from path import Path as path
from lxml import etree

from .expression import (
    Atom, Integer, Decimal, Escape,
    Negate, Factorial, Percent, Add, Subtract, Multiply, Divide, Power, Modulus,
    Function, Vector, Matrix, reduce_expression,
)
from .grammar import NotationParser, NotationError
from .render import render

# -----------------------------------------------------------------------------

XML_TAGS = {
    Negate: "negate",
    Factorial: "factorial",
    Percent: "percent",
    Add: "add",
    Subtract: "subtract",
    Multiply: "multiply",
    Divide: "divide",
    Power: "power",
    Modulus: "modulus",
    Function: "function",
    Vector: "vector",
    Matrix: "matrix",
}


def xml_atom(node):
    '''
    <integer>3</integer>, <decimal>0.5</decimal>, <variable>x</variable>,
    or <escape kind="A" slot="3"/>
    '''
    value = node.value
    if isinstance(value, Escape):
        elem = etree.Element("escape")
        elem.set("kind", value.kind.value)
        elem.set("slot", str(value.slot))
        return elem
    if isinstance(value, Integer):
        elem = etree.Element("integer")
    elif isinstance(value, Decimal):
        elem = etree.Element("decimal")
    else:
        elem = etree.Element("variable")
    elem.text = render(node)
    return elem


def expr2xml(expr):
    '''
    Convert an expression tree into an etree Element, one XML element per node.
    Function names and vector/matrix shapes become attributes.
    '''
    def handle_node(node, handled_kids):
        if isinstance(node, Atom):
            return xml_atom(node)
        elem = etree.Element(XML_TAGS[type(node)])
        if isinstance(node, Function):
            elem.set("name", node.name)
        elif isinstance(node, Vector):
            elem.set("size", str(node.size))
        elif isinstance(node, Matrix):
            elem.set("rows", str(node.shape[0]))
            elem.set("cols", str(node.shape[1]))
        elem.extend(handled_kids)
        return elem

    actions = {node_type: handle_node for node_type in list(XML_TAGS) + [Atom]}
    return reduce_expression(expr, actions)

# -----------------------------------------------------------------------------

class latex2ast:
    OUTPUT_FORMATS = ["latex", "xml", "repr"]

    def __init__(self, fn, latex_string=None, verbose=False, output_format="latex",
                 parse_all=True, max_depth=None, max_length=None):
        '''
        fn = filename of formulas, one per line
        latex_string = (str) formulas to process (instead of reading from file)
        output_format = (str) one of "latex" (canonical notation), "xml" (tree as XML),
                        "repr" (python repr of the tree)
        parse_all = (bool) if False, ignore anything after the end of each formula
        max_depth, max_length = limits passed on to the parser (None for defaults)
        '''
        if output_format not in self.OUTPUT_FORMATS:
            raise Exception("[latex2ast] Unknown output format %s, must be one of %s" % (
                output_format, self.OUTPUT_FORMATS))
        self.fn = fn or ""
        self.verbose = verbose
        self.latex_string = latex_string
        self.output_format = output_format
        self.parse_all = parse_all
        self.max_depth = max_depth
        self.max_length = max_length
        self.formatters = {"latex": self.format_latex,
                           "xml": self.format_xml,
                           "repr": self.format_repr,
                           }
        self.expressions = []		# (line number, expression) for every formula converted
        self.errors = []		# (line number, NotationError) for every formula which failed

    def get_formulas(self):
        '''
        Return list of (line number, formula), skipping blank lines
        '''
        if self.latex_string is not None:
            text = self.latex_string
        else:
            text = path(self.fn).read_text(encoding="utf8")
            if self.verbose:
                print("[latex2ast] read %s" % self.fn)
        return [(k + 1, line) for k, line in enumerate(text.splitlines()) if line.strip()]

    def convert_formula(self, formula):
        math_interpreter = NotationParser(formula, parse_all=self.parse_all,
                                          max_depth=self.max_depth, max_length=self.max_length)
        math_interpreter.parse_notation()
        expr = math_interpreter.build_expression()
        if self.verbose > 1:
            print("[latex2ast] variables=%s functions=%s escapes=%s" % (
                sorted(math_interpreter.variables_used),
                sorted(math_interpreter.functions_used),
                sorted(str(x) for x in math_interpreter.escapes_used)))
        return expr

    def format_latex(self, expr):
        return render(expr)

    def format_xml(self, expr):
        xml = etree.tostring(expr2xml(expr), pretty_print=True)
        return xml.decode("utf8").rstrip("\n")

    def format_repr(self, expr):
        return repr(expr)

    def convert(self, ofn=None, skip_output=False):
        '''
        Convert every formula, then write the results to ofn (or stdout if ofn is empty).
        Formulas which fail to parse are reported and skipped.

        Returns the output as a string if skip_output is set.
        '''
        formatter = self.formatters[self.output_format]
        output = []
        for lineno, formula in self.get_formulas():
            try:
                expr = self.convert_formula(formula)
            except NotationError as err:
                self.errors.append((lineno, err))
                print("[latex2ast] Error on line %d: %s" % (lineno, err))
                if self.verbose:
                    print("    %s" % formula)
                    if err.position is not None:
                        print("    %s^" % (" " * err.position))
                continue
            self.expressions.append((lineno, expr))
            output.append(formatter(expr))

        if self.verbose:
            print("[latex2ast] converted %d formulas, %d errors" % (len(self.expressions), len(self.errors)))

        text = "\n".join(output) + ("\n" if output else "")
        if skip_output:
            return text

        if ofn:
            path(ofn).write_text(text, encoding="utf8")
            print("Wrote %s" % ofn)
        else:
            sys.stdout.write(text)

#-----------------------------------------------------------------------------

class VAction(argparse.Action):
    def __call__(self, parser, args, values, option_string=None):
        curval = getattr(args, self.dest, 0) or 0
        values=values.count('v')+1
        setattr(args, self.dest, values + curval)

# -----------------------------------------------------------------------------

def CommandLine(args=None, arglist=None):
    '''
    Main command line.  Accepts args, to allow for simple unit testing.

    Exits with status 1 if any formula failed to parse.
    '''
    try:
        version = metadata.version("latex2ast")
    except metadata.PackageNotFoundError:
        version = "unknown"
    help_text = """usage: latex2ast [options] [formula_file]

Parse math notation (one formula per line) and write it back out in canonical
form, or as a tree.

Version: {}

""".format(version)

    parser = argparse.ArgumentParser(description=help_text, formatter_class=argparse.RawTextHelpFormatter)

    parser.add_argument("formulafile", nargs="?", help="file of formulas, one per line", default="")
    parser.add_argument("-e", "--expression", help="formula to convert, instead of reading a file", default=None)
    parser.add_argument('-v', "--verbose", nargs=0, help="increase output verbosity (add more -v to increase versbosity)", action=VAction, dest='verbose')
    parser.add_argument("-o", "--output", help="output filename", default="")
    parser.add_argument("-f", "--format", help="output format", choices=latex2ast.OUTPUT_FORMATS, default="latex")
    parser.add_argument("--prefix", help="ignore anything after the end of each formula", action="store_true")
    parser.add_argument("--max-depth", help="deepest bracket nesting allowed", type=int, default=None)
    parser.add_argument("--max-length", help="longest formula allowed, in characters", type=int, default=None)

    if not args:
        args = parser.parse_args(arglist)

    if not args.formulafile and args.expression is None:
        parser.error("give a formula file, or a formula with -e")

    l2a = latex2ast(args.formulafile, latex_string=args.expression, verbose=args.verbose or 0,
                    output_format=args.format, parse_all=not args.prefix,
                    max_depth=args.max_depth, max_length=args.max_length)
    l2a.convert(ofn=args.output)
    if l2a.errors:
        sys.exit(1)
    return l2a
