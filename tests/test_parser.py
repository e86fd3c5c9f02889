import pytest

from propcheck.parser import (
    And,
    Expression,
    FalseConstant,
    Iff,
    Implies,
    LexicalError,
    Not,
    Notation,
    Or,
    ParenClose,
    ParenOpen,
    StructuralError,
    TrueConstant,
    Variable,
    parse,
    parser,
)
from propcheck.scope import Assignment, UnboundVariable


def kinds(tokens):
    return [type(t) for t in tokens]


def var(name):
    return Variable(name, 0, 0)


def node(op, *args):
    return Expression(op(op.m_str, 0, 0), args)


########################################################################
# Tokenizer


def test_tokenize_constants_and_connective():
    tokens = list(parser.tokenize("1 ^ 1"))
    assert kinds(tokens) == [TrueConstant, And, TrueConstant]
    assert tokens == [TrueConstant(True, 0, 1), And("^", 2, 3), TrueConstant(True, 4, 5)]


def test_tokenize_all_symbols():
    tokens = list(parser.tokenize("!(p v Q) <=> 0 => 1 ^ x"))
    assert kinds(tokens) == [
        Not,
        ParenOpen,
        Variable,
        Or,
        Variable,
        ParenClose,
        Iff,
        FalseConstant,
        Implies,
        TrueConstant,
        And,
        Variable,
    ]


def test_tokenize_tracks_offsets():
    tokens = list(parser.tokenize("A <=> B"))
    assert [(t.start, t.end) for t in tokens] == [(0, 1), (2, 5), (6, 7)]


def test_tokenize_skips_whitespace():
    assert kinds(parser.tokenize("\tA\r\n^  B ")) == [Variable, And, Variable]


def test_variables_are_case_sensitive():
    assert var("P") != var("p")
    assert parse("P ^ p").free_variables() == {"P", "p"}


def test_v_is_always_or():
    assert kinds(parser.tokenize("AvB")) == [Variable, Or, Variable]


def test_whitespace_inside_pending_operator():
    tokens = list(parser.tokenize("P < = > Q"))
    assert kinds(tokens) == [Variable, Iff, Variable]
    assert tokens[1] == Iff("<=>", 0, 0)
    assert (tokens[1].start, tokens[1].end) == (2, 7)
    assert kinds(parser.tokenize("P =\n> Q")) == [Variable, Implies, Variable]
    assert parse("P = > Q").exp == parse("P => Q").exp


@pytest.mark.parametrize(
    "string, index",
    [
        ("A # B", 2),
        ("P é Q", 2),
        ("P == Q", 3),
        ("P <= Q", 5),
        ("P <=\tx", 5),
        ("P < ", 4),
        ("A <x", 3),
        ("P <", 3),
        ("P =", 3),
        ("&", 0),
    ],
)
def test_tokenize_invalid_character(string, index):
    with pytest.raises(LexicalError) as e:
        list(parser.tokenize(string))
    assert e.value.index == index
    assert e.value.exit_code == 1


def test_lexical_error_pointer():
    with pytest.raises(LexicalError) as e:
        parse("A # B")
    assert e.value.pointer("A # B") == "A # B\n  ^ Invalid character"
    assert str(e.value) == "@[2, 3]: Invalid character"


########################################################################
# Validator


@pytest.mark.parametrize(
    "string, message, rule",
    [
        ("A ^", "Expected value at the end", 6),
        ("(A ^ B", "Unbalanced parentheses", 6),
        ("", "Expected value at the end", 6),
        ("!", "Expected value at the end", 6),
        ("A ^ ^ B", "Expected value after operator", 1),
        ("^ A", "Expected value before operator", 1),
        ("v", "Expected value before operator", 1),
        ("A !B", "Not operator must come before value, not after", 2),
        ("A (B)", "Parentheses may not come after a value", 3),
        ("(A) (B)", "Parentheses may not come after a value", 3),
        ("(A ^)", "Closing parentheses may not come after an operator", 4),
        ("(!)", "Closing parentheses may not come after an operator", 4),
        ("A)", "No matching parentheses to close", 4),
        ("A B", "Can't have two values after each other", 5),
        ("(A) 1", "Can't have two values after each other", 5),
    ],
)
def test_validate_rejects(string, message, rule):
    with pytest.raises(StructuralError) as e:
        parse(string)
    assert e.value.err == message
    assert e.value.rule == rule
    assert e.value.exit_code == 2


def test_validate_points_at_token():
    with pytest.raises(StructuralError) as e:
        parse("A ^ ^ B")
    assert (e.value.start, e.value.end) == (4, 5)


def test_empty_parentheses_fail_in_tree_builder():
    with pytest.raises(StructuralError):
        parse("A ^ ()")


########################################################################
# Tree builder


def test_single_token():
    assert parse("P").exp == var("P")


def test_outer_parentheses_are_stripped():
    assert parse("((A))").exp == var("A")
    assert parse("(A ^ B)").exp == node(And, var("A"), var("B"))


def test_outer_parentheses_must_match():
    assert parse("(A) ^ (B)").exp == node(And, var("A"), var("B"))
    assert parse("(A v B) ^ (C)").exp == node(
        And, node(Or, var("A"), var("B")), var("C")
    )


def test_precedence():
    assert parse("A v B ^ C").exp == node(Or, var("A"), node(And, var("B"), var("C")))
    assert parse("A => B v C <=> D").exp == node(
        Iff, node(Implies, var("A"), node(Or, var("B"), var("C"))), var("D")
    )


def test_not_binds_tightest():
    assert parse("!A ^ B").exp == node(And, node(Not, var("A")), var("B"))
    assert parse("!(A ^ B)").exp == node(Not, node(And, var("A"), var("B")))
    assert parse("!!A").exp == node(Not, node(Not, var("A")))


def test_leftmost_of_equal_scores_is_split_first():
    assert parse("A => B => C").exp == node(
        Implies, var("A"), node(Implies, var("B"), var("C"))
    )
    assert parse("(A => B) => C").exp == node(
        Implies, node(Implies, var("A"), var("B")), var("C")
    )


def test_children():
    tree = parse("A ^ !B").exp
    assert tree.left == var("A")
    negation = tree.right
    assert negation.left is None
    assert negation.right == var("B")
    assert var("B").left is None and var("B").right is None


########################################################################
# Expression tree


def test_render():
    assert parse("1 ^ 1").render() == "( 1 ) & ( 1 )"
    assert parse("!P").render() == " ! ( P )"
    assert parse("A v B ^ C").render() == "( A ) | (( B ) & ( C ))"
    assert parse("A => B <=> 0").render() == "(( A ) > ( B )) = ( 0 )"


@pytest.mark.parametrize(
    "string",
    [
        "1 ^ 1",
        "!P",
        "A => B => C",
        "(A => B) => C",
        "!(P v Q) <=> (!P) ^ (!Q)",
        "((a)) v !0 ^ (b <=> !!c)",
    ],
)
def test_input_rendering_parses_to_same_tree(string):
    formula = parse(string)
    assert parse(formula.render(Notation.INPUT)).exp == formula.exp


def test_display_rendering_is_not_input():
    with pytest.raises(LexicalError):
        parse(parse("A ^ B").render())


@pytest.mark.parametrize(
    "string, p, q, expected",
    [
        ("P ^ Q", True, True, True),
        ("P ^ Q", True, False, False),
        ("P v Q", False, False, False),
        ("P v Q", False, True, True),
        ("!P", True, False, False),
        ("P => Q", False, False, True),
        ("P => Q", True, False, False),
        ("P => Q", True, True, True),
        ("P <=> Q", False, False, True),
        ("P <=> Q", True, False, False),
        ("P ^ Q ^ 1 v 0", True, True, True),
    ],
)
def test_evaluate(string, p, q, expected):
    assert parse(string).evaluate(Assignment({"P": p, "Q": q})) is expected


def test_evaluate_constants():
    assert parse("1 ^ 1").evaluate() is True
    assert parse("0 v 0").evaluate() is False


def test_evaluate_rejects_unbound_before_evaluating():
    with pytest.raises(UnboundVariable) as e:
        parse("Q ^ P v R").evaluate(Assignment({"R": True}))
    assert e.value.names == ["P", "Q"]
    assert str(e.value) == "Undefined variable: P, Q"


def test_tree_lookup_of_unbound_variable():
    with pytest.raises(UnboundVariable):
        parse("P").exp.evaluate(Assignment({"Q": True}))


def test_free_variables():
    formula = parse("P ^ Q v P")
    assert formula.free_variables() == {"P", "Q"}
    assert formula.free_variables(Assignment({"P": True})) == {"Q"}
    assert formula.free_variables(Assignment({"P": True, "Q": False})) == set()
    assert parse("1 => 0").free_variables() == set()


def test_long_negation_chain_builds_without_recursion():
    tree = parse("!" * 1200 + "P").exp
    depth = 0
    while isinstance(tree, Expression):
        assert isinstance(tree.op, Not)
        tree = tree.right
        depth += 1
    assert depth == 1200
    assert tree == var("P")


def test_assignment_membership():
    scope = Assignment({"P": True}).inner_scope({"Q": False})
    assert "P" in scope
    assert "Q" in scope
    assert "R" not in scope
