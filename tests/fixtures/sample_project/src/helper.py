"""Intermediate layer between the tests and the calculator."""

from calculator import Calculator


def helper_b():
    calc = Calculator()
    return calc.add(1, 2)
