import argparse
import logging
import sys

from .logic import check_tautology, print_truth_table
from .parser import ParseError, parse
from .scope import Assignment

logger = logging.getLogger(__name__)

DEFAULT_FORMULA = "1 ^ 1"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Lexical and structural errors exit with ParseError.exit_code, 1 and 2
TOO_DEEP_EXIT_CODE = 3


def format_bool(value):
    return "true" if value else "false"


def parse_binding(text):
    name, sep, value = text.partition("=")
    if not sep or len(name) != 1 or not name.isascii() or not name.isalpha():
        raise argparse.ArgumentTypeError(f"expected VAR=0|1, got {text!r}")
    if value not in ("0", "1"):
        raise argparse.ArgumentTypeError(f"value of {name} must be 0 or 1")
    return name, value == "1"


def build_arg_parser():
    p = argparse.ArgumentParser(
        prog="propcheck",
        description="Evaluate a propositional formula or check whether it is a tautology.",
    )
    p.add_argument(
        "formula",
        nargs="?",
        default=DEFAULT_FORMULA,
        help=f"formula using ! ^ v => <=> ( ) 0 1 and letters (default: {DEFAULT_FORMULA!r})",
    )
    p.add_argument(
        "-b",
        "--bind",
        action="append",
        type=parse_binding,
        default=[],
        metavar="VAR=0|1",
        help="hold a variable fixed while the others are enumerated",
    )
    p.add_argument(
        "--table",
        action="store_true",
        help="also print the full truth table",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def report(formula, scope, table, out):
    print(f"tokenized: {list(formula.tokens)!r}", file=out)
    print(f"tree: {formula.render()}", file=out)

    unknowns = sorted(formula.free_variables(scope))
    for var in unknowns:
        print(f"Unknown variable: {var}", file=out)

    if not unknowns:
        print(f"eval: {format_bool(formula.evaluate(scope))}", file=out)
    else:

        def on_row(assignment, res):
            print(f"tvars: {list(assignment.items())!r} -> {format_bool(res)}", file=out)

        result = check_tautology(formula, scope, on_row=on_row)
        print("Is a tautology" if result else "Is not a tautology", file=out)

    if table:
        print_truth_table(formula, scope, file=out)


def run(source, bindings=(), table=False, out=None, err=None):
    out = out or sys.stdout
    err = err or sys.stderr

    try:
        scope = Assignment(list(bindings))
    except ValueError as e:
        print(e, file=err)
        return 2

    try:
        formula = parse(source)
        report(formula, scope, table, out)
    except ParseError as e:
        print(e.pointer(source), file=err)
        return e.exit_code
    except RecursionError:
        print("Formula is nested too deeply", file=err)
        return TOO_DEEP_EXIT_CODE

    return 0


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    logger.debug("formula %r, bindings %r", args.formula, args.bind)

    return run(args.formula, args.bind, args.table)
