import logging

import pandas as pd

from .parser import Formula, parse
from .scope import Assignment, NullAssignment

logger = logging.getLogger(__name__)


def _as_formula(inp):
    if isinstance(inp, Formula):
        return inp
    return parse(inp)


def _as_scope(bindings):
    if bindings is None:
        return NullAssignment()
    if isinstance(bindings, Assignment):
        return bindings
    return Assignment(bindings)


def boolean_permutation(length):
    """
    Bit j of i is the value of variable j, for every i below 2**length
    """
    for i in range(1 << length):
        yield tuple((i >> j) & 1 == 1 for j in range(length))


def assignments(variables, bindings=None):
    scope = _as_scope(bindings)
    for perm in boolean_permutation(len(variables)):
        yield scope.inner_scope(list(zip(variables, perm)))


class TautologyResult:
    def __init__(self, formula, variables, rows, counterexample=None):
        self.formula = formula
        self.variables = variables
        self.rows = rows
        self.counterexample = counterexample

    @property
    def is_tautology(self):
        return self.counterexample is None

    def __bool__(self):
        return self.is_tautology

    def __repr__(self):
        return f"<TautologyResult {self.is_tautology} after {len(self.rows)} rows>"


def check_tautology(inp, bindings=None, on_row=None):
    """
    Evaluates the formula under every assignment of its free variables

    Stops at the first assignment that makes it false. Variables are taken
    in sorted order so the enumeration is the same on every run.
    on_row is called with (assignment, result) for each row checked.
    """
    formula = _as_formula(inp)
    scope = _as_scope(bindings)
    variables = sorted(formula.free_variables(scope))

    rows = []
    counterexample = None

    for assignment in assignments(variables, scope):
        res = formula.evaluate(assignment)
        logger.debug("%r -> %s", assignment, res)
        rows.append((assignment, res))
        if on_row is not None:
            on_row(assignment, res)
        if not res:
            counterexample = assignment
            break

    return TautologyResult(formula, variables, rows, counterexample)


def is_tautology(inp, bindings=None):
    return check_tautology(inp, bindings).is_tautology


def generate_truth_table(inp, bindings=None):
    """
    Returns pandas dataframe
    """
    formula = _as_formula(inp)
    scope = _as_scope(bindings)
    variables = sorted(formula.free_variables(scope))

    headers = [*variables, formula.source]
    rows = []

    for assignment in assignments(variables, scope):
        res = formula.evaluate(assignment)
        rows.append([*(assignment.get_identifier(var) for var in variables), res])

    return pd.DataFrame(rows, columns=headers)


def print_truth_table(inp, bindings=None, file=None):
    s = generate_truth_table(inp, bindings).to_string(index=False)

    print(s, file=file)
