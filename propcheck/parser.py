from enum import Enum
import logging
import re

from .scope import NullAssignment, UnboundVariable

logger = logging.getLogger(__name__)

###########
# Library #
###########

# Propositional formulas are parsed in three passes:
#   tokenize    text -> tuple of tokens, greedy match against the token classes
#   validate    one pass over the tokens keeping track of the last token kind
#   build_tree  split each slice at its loosest binding connective and recurse

# Utils

# Skipped between tokens and inside a pending `<=>` or `=>`
WHITESPACE = " \t\r\n"


def str_match(string: str, m: str, l=None):
    l = l or (lambda x: x)
    if len(string) == 0:
        return None
    if string.startswith(m):
        return l(string[: len(m)]), len(m)
    return None


def re_match(string, r, l=None):
    l = l or (lambda x: x.group(0))
    m = re.match(r, string)
    if m:
        return l(m), m.end()
    return None


class Notation(Enum):
    # & | ! > =, not accepted by the tokenizer
    DISPLAY = "DISPLAY"
    # ^ v ! => <=>, re-tokenizes into the same tree
    INPUT = "INPUT"


class IToken:
    m_re = None
    m_str = None

    re_l = None
    str_l = None

    # Single character used when rendering a tree for display
    symbol = None

    def __init__(self, value, start, end):
        self.value = value
        self.start = start
        self.end = end

    @classmethod
    def match(cls, string):
        """
        A match function returns
        (value, length)
        """
        if cls.m_re:
            return re_match(string, cls.m_re, cls.re_l)
        elif cls.m_str:
            return str_match(string, cls.m_str, cls.str_l)
        raise NotImplementedError()

    def notation(self, notation=Notation.DISPLAY):
        if notation is Notation.INPUT:
            return self.m_str
        return self.symbol

    def __eq__(self, other):
        # Offsets are ignored, tokens compare by kind and value
        if not isinstance(other, IToken):
            return NotImplemented
        return type(self) is type(other) and self.value == other.value

    def __hash__(self):
        return hash((type(self), self.value))

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.value.__repr__()}>"


class WhitespaceToken(IToken):
    pass


class ISingleExpression(IToken):
    """
    Tokens that are complete formulas on their own

    They double as the leaves of the expression tree.
    """

    left = None
    right = None

    @property
    def args(self):
        return ()

    def evaluate(self, scope):
        raise NotImplementedError()

    def render(self, notation=Notation.DISPLAY):
        return f" {self.notation(notation)} "


class ConstantToken(ISingleExpression):
    def evaluate(self, scope):
        return self.value


class IdentifierToken(ISingleExpression):
    pass


class Function(IToken):
    precedence = None

    def exec(self, scope, args):
        raise NotImplementedError()


class UnaryOperatorToken(Function):
    pass


class BinaryOperatorToken(Function):
    """
    Must provide a precedence value

    Lower precedence binds more loosely, so it is split first
    """


class OpenParenthesisToken(IToken):
    pass


class CloseParenthesisToken(IToken):
    pass


class IExpression:
    def evaluate(self, scope):
        raise NotImplementedError()


##########
# Errors #
##########


class ParseError(Exception):
    exit_code = 2

    def __init__(self, err, start, end):
        self.err = err
        self.start = start
        self.end = end

    def __str__(self):
        return f"@[{self.start}, {self.end}]: {self.err}"

    def pointer(self, source):
        """
        The source line with a caret under the offending character
        """
        return f"{source}\n{' ' * self.start}^ {self.err}"


class LexicalError(ParseError):
    exit_code = 1

    def __init__(self, index):
        super().__init__("Invalid character", index, index + 1)

    @property
    def index(self):
        return self.start


class StructuralError(ParseError):
    exit_code = 2

    def __init__(self, err, start, end, rule=None):
        super().__init__(err, start, end)
        self.rule = rule


##########
# Parser #
##########


class Parser:
    def __init__(self, tokens=None):
        tokens = tokens or DEFAULT_TOKENS
        for token in tokens:
            if not issubclass(token, IToken):
                raise Exception(token, "is not a token")
            if issubclass(token, Function):
                if token.precedence is None:
                    raise Exception(
                        f"class '{token.__name__}' has no precedence. Connectives must have a precedence"
                    )
        self.tokens = tokens

    def partial_match_length(self, string):
        """
        Offset of the first character that breaks a pending multi character
        operator, or 0 when string does not start one

        Whitespace inside a pending operator is skipped, `< = >` is still Iff.
        """
        longest = 0
        for token in self.tokens:
            if not token.m_str or len(token.m_str) < 2:
                continue
            i = j = 0
            while i < len(string) and j < len(token.m_str):
                if j > 0 and string[i] in WHITESPACE:
                    i += 1
                elif string[i] == token.m_str[j]:
                    i += 1
                    j += 1
                else:
                    break
            if 0 < j < len(token.m_str):
                longest = max(longest, i)
        return longest

    def tokenize(self, string):
        pointer = 0
        while string:
            for token in self.tokens:
                if m := token.match(string):
                    v, l = m
                    if not issubclass(token, WhitespaceToken):
                        yield token(v, pointer, pointer + l)
                    pointer += l
                    string = string[l:]
                    break
            else:
                # `<` `<=` and `=` only fail once the next character arrives
                raise LexicalError(pointer + self.partial_match_length(string))

    @staticmethod
    def validate(tokens):
        par_level = 0
        var_last = False
        oper_last = False
        not_last = False

        for token in tokens:
            if isinstance(token, BinaryOperatorToken):
                if oper_last:
                    raise StructuralError(
                        "Expected value after operator", token.start, token.end, 1
                    )
                if not var_last:
                    raise StructuralError(
                        "Expected value before operator", token.start, token.end, 1
                    )
                oper_last, var_last, not_last = True, False, False
            elif isinstance(token, UnaryOperatorToken):
                if var_last:
                    raise StructuralError(
                        "Not operator must come before value, not after",
                        token.start,
                        token.end,
                        2,
                    )
                oper_last, var_last, not_last = False, False, True
            elif isinstance(token, OpenParenthesisToken):
                if var_last:
                    raise StructuralError(
                        "Parentheses may not come after a value",
                        token.start,
                        token.end,
                        3,
                    )
                par_level += 1
                oper_last, var_last, not_last = False, False, False
            elif isinstance(token, CloseParenthesisToken):
                if oper_last or not_last:
                    raise StructuralError(
                        "Closing parentheses may not come after an operator",
                        token.start,
                        token.end,
                        4,
                    )
                par_level -= 1
                if par_level < 0:
                    raise StructuralError(
                        "No matching parentheses to close", token.start, token.end, 4
                    )
                # A closed group counts as a value
                oper_last, var_last, not_last = False, True, False
            elif isinstance(token, ISingleExpression):
                if var_last:
                    raise StructuralError(
                        "Can't have two values after each other",
                        token.start,
                        token.end,
                        5,
                    )
                oper_last, var_last, not_last = False, True, False
            else:
                raise StructuralError(
                    f"{token.__repr__()} cannot be processed", token.start, token.end
                )

        end = tokens[-1].end if tokens else 0

        if oper_last or not var_last:
            raise StructuralError("Expected value at the end", end, end, 6)

        if par_level != 0:
            raise StructuralError("Unbalanced parentheses", end, end, 6)

        return tokens

    @staticmethod
    def is_wrapped(tokens):
        """
        True when the first token opens a group that the last token closes
        """
        if len(tokens) < 3:
            return False
        if not isinstance(tokens[0], OpenParenthesisToken):
            return False
        if not isinstance(tokens[-1], CloseParenthesisToken):
            return False

        par_level = 0
        for token in tokens[:-1]:
            if isinstance(token, OpenParenthesisToken):
                par_level += 1
            elif isinstance(token, CloseParenthesisToken):
                par_level -= 1
            if par_level == 0:
                return False
        return True

    @staticmethod
    def lowest_precedence(tokens):
        pos = None
        score = None
        par_level = 0

        for i, token in enumerate(tokens):
            if isinstance(token, OpenParenthesisToken):
                par_level += 1
                continue
            if isinstance(token, CloseParenthesisToken):
                par_level -= 1
                continue
            if not isinstance(token, Function):
                continue

            s = par_level * 10 + token.precedence
            # Strict comparison, the leftmost of equal scores wins
            if score is None or s < score:
                score = s
                pos = i

        return pos

    def build_tree(self, tokens):
        if len(tokens) == 1:
            return tokens[0]

        if self.is_wrapped(tokens):
            return self.build_tree(tokens[1:-1])

        lowest = self.lowest_precedence(tokens)
        if lowest is None:
            raise StructuralError(
                f"{tokens[0].__repr__()} cannot be processed",
                tokens[0].start,
                tokens[-1].end,
            )

        op = tokens[lowest]
        logger.debug("splitting %r at %d", op, lowest)

        if isinstance(op, UnaryOperatorToken):
            # Consecutive `!` are wrapped in a loop
            end = lowest
            while end < len(tokens) and isinstance(tokens[end], UnaryOperatorToken):
                end += 1
            exp = self.build_tree(tokens[end:])
            for negation in reversed(tokens[lowest:end]):
                exp = Expression(negation, [exp])
            return exp
        return Expression(
            op,
            [self.build_tree(tokens[:lowest]), self.build_tree(tokens[lowest + 1 :])],
        )

    def parse(self, string):
        tokens = tuple(self.tokenize(string))
        logger.debug("tokenized %r into %r", string, tokens)
        self.validate(tokens)
        return Formula(string, tokens, self.build_tree(tokens))


###################
# Expression tree #
###################


class Expression(IExpression):
    def __init__(self, op, args):
        self.op = op
        self.args = tuple(args)

    @property
    def left(self):
        if len(self.args) == 2:
            return self.args[0]
        return None

    @property
    def right(self):
        return self.args[-1]

    def evaluate(self, scope):
        return self.op.exec(scope, [v.evaluate(scope) for v in self.args])

    def render(self, notation=Notation.DISPLAY):
        s = ""
        if self.left is not None:
            s += f"({self.left.render(notation)})"
        s += f" {self.op.notation(notation)} "
        if self.right is not None:
            s += f"({self.right.render(notation)})"
        return s

    def __eq__(self, other):
        if not isinstance(other, Expression):
            return NotImplemented
        return self.op == other.op and self.args == other.args

    def __hash__(self):
        return hash((self.op, self.args))

    def __repr__(self):
        return f"{self.op.__repr__()}({', '.join(map(repr, self.args))})"


def ast_visitor(ast, l):
    l(ast)
    for arg in ast.args:
        ast_visitor(arg, l)


def get_variables(ast, scope=None):
    """
    Variables of the tree that have no binding in scope
    """
    scope = scope if scope is not None else NullAssignment()
    variables = set()
    ast_visitor(
        ast,
        lambda x: variables.add(x.value)
        if isinstance(x, Variable) and x.value not in scope
        else None,
    )
    return frozenset(variables)


class Formula(IExpression):
    """
    A parsed formula: the source text, its tokens and the tree root
    """

    def __init__(self, source, tokens, exp):
        self.source = source
        self.tokens = tokens
        self.exp = exp

    def free_variables(self, scope=None):
        return get_variables(self.exp, scope)

    def evaluate(self, scope=None):
        scope = scope if scope is not None else NullAssignment()
        unbound = self.free_variables(scope)
        if unbound:
            raise UnboundVariable(unbound)
        return self.exp.evaluate(scope)

    def render(self, notation=Notation.DISPLAY):
        return self.exp.render(notation)

    def __repr__(self):
        return f"Formula({self.exp.__repr__()})"


###############
# Token kinds #
###############


class TrueConstant(ConstantToken):
    # str_l turns the matched text into the token value
    str_l = lambda x: True
    m_str = "1"
    symbol = "1"


class FalseConstant(ConstantToken):
    str_l = lambda x: False
    m_str = "0"
    symbol = "0"


class Whitespace(WhitespaceToken):
    m_re = r"[ \t\r\n]+"


class Variable(IdentifierToken):
    m_re = r"[a-zA-Z]"

    def evaluate(self, scope):
        return scope.get_identifier(self.value)

    def notation(self, notation=Notation.DISPLAY):
        return self.value


class ParenOpen(OpenParenthesisToken):
    m_str = "("
    symbol = "("


class ParenClose(CloseParenthesisToken):
    m_str = ")"
    symbol = ")"


class And(BinaryOperatorToken):
    precedence = 4
    m_str = "^"
    symbol = "&"

    def exec(self, scope, args):
        return args[0] and args[1]


class Or(BinaryOperatorToken):
    precedence = 3
    m_str = "v"
    symbol = "|"

    def exec(self, scope, args):
        return args[0] or args[1]


class Implies(BinaryOperatorToken):
    precedence = 2
    m_str = "=>"
    # `= >` is accepted, the value is always m_str
    m_re = r"=[ \t\r\n]*>"
    re_l = lambda x: "=>"
    symbol = ">"

    def exec(self, scope, args):
        return not args[0] or args[1]


class Iff(BinaryOperatorToken):
    precedence = 1
    m_str = "<=>"
    m_re = r"<[ \t\r\n]*=[ \t\r\n]*>"
    re_l = lambda x: "<=>"
    symbol = "="

    def exec(self, scope, args):
        return args[0] == args[1]


class Not(UnaryOperatorToken):
    precedence = 5
    m_str = "!"
    symbol = "!"

    def exec(self, scope, args):
        return not args[0]


# Order matters: `v` is taken by Or before Variable sees it
DEFAULT_TOKENS = [
    Whitespace,
    Iff,
    Implies,
    Not,
    Or,
    And,
    TrueConstant,
    FalseConstant,
    ParenOpen,
    ParenClose,
    Variable,
]

parser = Parser()


def parse(string):
    return parser.parse(string)
