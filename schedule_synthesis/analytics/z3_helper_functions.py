#     Copyright (C) 2024 Lisa Maile
#
#     lisa.maile@fau.de
#
#     This file is part of the DYnamic Reliable rEal-time Communication in Tsn (DYRECTsn) framework.
#
#     DYRECTsn is free software: you can redistribute it and/or modify
#     it under the terms of the GNU Lesser General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     DYRECTsn is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU Lesser General Public License for more details.
#
#     You should have received a copy of the GNU Lesser General Public License
#     along with DYRECTsn.  If not, see <http://www.gnu.org/licenses/>.
#
from decimal import Decimal
from fractions import Fraction
from typing import List, Sequence, Union

import z3

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """
    converts every number to Decimal (floats via their string representation to avoid rounding errors)
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_real(value: Number) -> z3.ArithRef:
    """
    wraps a number as an exact z3 real constant
    :param value: int, float, string or Decimal
    :return: z3 rational value
    """
    # 'f' avoids exponents such as 1E+2 which z3 does not parse
    return z3.RealVal(format(to_decimal(value), 'f'))


def sum_expressions(terms: Sequence[z3.ArithRef]) -> z3.ArithRef:
    """
    sums the terms from left to right: ((t0 + t1) + t2) + ...
    :param terms: z3 arithmetic expressions
    :return: sum, or the real 0 for an empty sequence
    """
    if len(terms) == 0:
        return z3.RealVal(0)
    total = terms[0]
    for term in terms[1:]:
        total = total + term
    return total


def mean(terms: Sequence[z3.ArithRef]) -> z3.ArithRef:
    assert len(terms) > 0, "mean of an empty list of expressions"
    return sum_expressions(terms) / z3.RealVal(len(terms))


def absolute_difference(a: z3.ArithRef, b: z3.ArithRef) -> z3.ArithRef:
    """
    |a - b| written as a conditional, the solver expressions have no abs primitive
    """
    return z3.If(a >= b, a - b, b - a)


def model_value(model: z3.ModelRef, expression: z3.ExprRef) -> Union[Fraction, int, bool]:
    """
    reads an expression back from a satisfying model without rounding
    :param model: model returned by the solver
    :param expression: any z3 expression over the model's variables
    :return: Fraction for reals, int for integers, bool for booleans
    """
    value = model.eval(expression, model_completion=True)
    if z3.is_int_value(value):
        return value.as_long()
    if z3.is_rational_value(value):
        return value.as_fraction()
    if z3.is_true(value) or z3.is_false(value):
        return z3.is_true(value)
    raise ValueError("Value {} of {} is not a number.".format(value, expression))


def values_of(model: z3.ModelRef, expressions: Sequence[z3.ExprRef]) -> List[Union[Fraction, int, bool]]:
    return [model_value(model, expression) for expression in expressions]
