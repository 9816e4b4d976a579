import math

import pytest

from aw.aw_datatypes import ExpressionError
from aw.aw_expr import (
    OPAQUE, evaluate_formula, parse_number, to_number, to_string, truthy, quote,
)


@pytest.mark.parametrize("formula, expected", [
    ("1 + 2 * 3", 7),
    ("(1 + 2) * 3", 9),
    ("10 - 4 - 3", 3),
    ("10 / 4", 2.5),
    ("7 % 3", 1),
    ("-7 % 3", -1),
    ("-(2 + 3)", -5),
    ("1e3", 1000),
    ('"Hi " + "Bob"', "Hi Bob"),
    ('"a" + 1', "a1"),
    ('1 + 2 + "x"', "3x"),
    ('"5" * 2', 10),
    ('"6" - 1', 5),
])
def test_arithmetic_and_concatenation(formula, expected):
    assert evaluate_formula(formula) == expected


def test_integral_division_reads_as_int():
    result = evaluate_formula("4 / 2")
    assert result == 2 and isinstance(result, int)


def test_division_by_zero():
    assert evaluate_formula("1 / 0") == math.inf
    assert evaluate_formula("-1 / 0") == -math.inf
    assert math.isnan(evaluate_formula("0 / 0"))
    assert math.isnan(evaluate_formula("5 % 0"))


@pytest.mark.parametrize("formula, expected", [
    ("5 > 3", True),
    ("5 <= 3", False),
    ('"abc" < "abd"', True),
    ('"10" > 9', True),
    ('"5" == 5', True),
    ('"5" === 5', False),
    ('"5" !== 5', True),
    ("1 != 2", True),
    ('"" == 0', True),
    ("true == 1", True),
    ("!0", True),
    ('!"x"', False),
    ("1 == 1 && 2 == 2", True),
    ("1 == 2 || 3 > 2", True),
    ('"Bob" == "Bob"', True),
])
def test_comparisons_and_logic(formula, expected):
    assert evaluate_formula(formula) is expected


def test_logical_operators_return_operands():
    assert evaluate_formula('1 && "x"') == "x"
    assert evaluate_formula('0 || "y"') == "y"
    assert evaluate_formula('"" && 1') == ""


def test_string_escapes():
    assert evaluate_formula(r'"say \"hi\""') == 'say "hi"'
    assert evaluate_formula(quote('a "b" \\c')) == 'a "b" \\c'


def test_object_token_is_opaque():
    assert evaluate_formula("[Object]") is OPAQUE
    assert evaluate_formula('"obj: " + [Object]') == "obj: [Object]"
    assert evaluate_formula("[Object] == [Object]") is False


@pytest.mark.parametrize("formula", [
    "Hello World",
    "",
    "1 +",
    "(1 + 2",
    "#ff0000",
    "1 2",
    "x > 3",
])
def test_non_formulas_raise(formula):
    with pytest.raises(ExpressionError):
        evaluate_formula(formula)


def test_coercions():
    assert parse_number("42") == 42
    assert parse_number(" 3.5 ") == 3.5
    assert parse_number("2.0") == 2
    assert parse_number("abc") is None
    assert parse_number("") is None
    assert parse_number("1 2") is None

    assert to_number("") == 0
    assert to_number(True) == 1
    assert math.isnan(to_number("abc"))

    assert to_string(None) == "undefined"
    assert to_string(False) == "false"
    assert to_string(2.5) == "2.5"
    assert to_string(3.0) == "3"
    assert to_string(math.nan) == "NaN"
    assert to_string(-math.inf) == "-Infinity"
    assert to_string({"a": 1}) == "[Object]"

    assert truthy("0") is True
    assert truthy(0) is False
    assert truthy(math.nan) is False
    assert truthy(None) is False
    assert truthy(OPAQUE) is True


def test_numbers_stay_in_double_range():
    assert evaluate_formula("1" * 5000) == math.inf
    assert parse_number("9" * 5000) == math.inf
    assert parse_number("-Infinity") == -math.inf

    big = evaluate_formula(str(2 ** 60) + " * 2")
    assert isinstance(big, float) and big == float(2 ** 61)
    assert evaluate_formula(str(2 ** 53)) == 2 ** 53
    assert isinstance(to_number(2 ** 80), float)

    assert evaluate_formula("-Infinity") == -math.inf
    assert math.isnan(evaluate_formula("NaN"))
    assert math.isnan(evaluate_formula("Infinity % 7"))

    assert to_string(2.0 ** 64) == "18446744073709551616"
    assert to_string(1e21) == "1e+21"
    assert to_string(2 ** 70) == "1180591620717411303424"
