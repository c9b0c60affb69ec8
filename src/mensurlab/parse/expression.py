"""
Arithmetic expressions and named variables of the structured bore format.

Formulas are parsed with sympy against a restricted namespace: numbers, the
four arithmetic operators, power (``^`` or ``**``), parentheses, the bound
variables and a small set of math functions. Nothing else can be reached from
a bore file.
"""

import keyword
import logging
import math
import re
from tokenize import TokenError

import sympy
from sympy import Abs, Float, Integer, Rational, Symbol
from sympy.parsing.sympy_parser import convert_xor, parse_expr, standard_transformations

from ..errors import ExpressionError

_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_TRANSFORMATIONS = standard_transformations + (convert_xor,)

# log is the common logarithm and ln the natural one
FUNCTIONS = {
    "sin": sympy.sin, "cos": sympy.cos, "tan": sympy.tan,
    "asin": sympy.asin, "acos": sympy.acos, "atan": sympy.atan, "atan2": sympy.atan2,
    "sinh": sympy.sinh, "cosh": sympy.cosh, "tanh": sympy.tanh,
    "sqrt": sympy.sqrt, "exp": sympy.exp,
    "ln": sympy.log,
    "log": lambda x: sympy.log(x, 10),
    "log10": lambda x: sympy.log(x, 10),
    "abs": Abs,
    "floor": sympy.floor, "ceil": sympy.ceiling,
    "pow": lambda x, y: sympy.Pow(x, y),
}

_PARSE_GLOBALS = {
    "Symbol": Symbol, "Integer": Integer, "Float": Float, "Rational": Rational,
    **FUNCTIONS,
}


def is_numeric_literal(field):
    return _NUMBER.match(field.strip()) is not None


def evaluate_expression(expr, variables=None):
    """
    Evaluate an arithmetic formula to a float.

    Args:
        expr: The formula as written in the bore file.
        variables: Mapping of variable name to float value visible to the formula.

    Raises:
        ExpressionError: The formula is malformed, names an unknown identifier
            or does not evaluate to a finite real number.
    """
    text = expr.strip()
    if len(text) == 0:
        raise ExpressionError("empty expression")

    local_dict = {name: Float(value) for name, value in (variables or {}).items()}
    try:
        parsed = parse_expr(text, local_dict=local_dict, global_dict=dict(_PARSE_GLOBALS),
                            transformations=_TRANSFORMATIONS)
    except (SyntaxError, TypeError, ValueError, AttributeError, NameError,
            sympy.SympifyError, TokenError) as e:
        raise ExpressionError(f"cannot parse expression \"{text}\": {e}") from e

    if not isinstance(parsed, sympy.Basic):
        raise ExpressionError(f"expression \"{text}\" is not arithmetic")

    unknown = sorted(str(s) for s in parsed.free_symbols)
    if len(unknown) > 0:
        raise ExpressionError(f"Unknown identifier in \"{text}\": {', '.join(unknown)}")

    if parsed.has(sympy.zoo, sympy.nan, sympy.oo, -sympy.oo):
        raise ExpressionError(f"expression \"{text}\" is not finite")

    value = complex(sympy.N(parsed))
    if value.imag != 0:
        raise ExpressionError(f"expression \"{text}\" is not real: {value}")
    if not math.isfinite(value.real):
        raise ExpressionError(f"expression \"{text}\" is not finite")
    return float(value.real)


def is_variable_definition(line):
    """True if the line binds a variable, i.e. "=" comes before any comma."""
    eq = line.find("=")
    if eq < 0:
        return False
    comma = line.find(",")
    return comma < 0 or eq < comma


class VariableTable:
    """
    Named numeric variables, bound in file order.

    An expression only sees the names bound before it. Names are unique; pi is
    bound from the start.
    """

    def __init__(self):
        self._values = {"pi": math.pi}

    def __contains__(self, name):
        return name in self._values

    def __getitem__(self, name):
        return self._values[name]

    def __len__(self):
        return len(self._values)

    def bind(self, name, expr):
        name = name.strip()
        if _IDENTIFIER.match(name) is None or keyword.iskeyword(name) or name in _PARSE_GLOBALS:
            raise ExpressionError(f"Invalid variable name: \"{name}\"")
        if name in self._values:
            raise ExpressionError(f"Duplicate variable: {name}")
        value = self.value(expr)
        self._values[name] = value
        logging.debug(f"variable {name} = {value}")
        return value

    def value(self, field):
        """Evaluate a numeric field: a plain literal directly, anything else as expression."""
        field = field.strip()
        if is_numeric_literal(field):
            return float(field)
        return evaluate_expression(field, self._values)
