"""
Constrained expression language for SCRIPT and DECISION nodes.

Scripts and conditions are tokenized, parsed into a small AST and walked by an
evaluator that only sees the run's context mapping and a fixed set of builtins.
There is no path from an expression to Python attributes, imports or calls.

Conditions are single expressions:

    retries < 3 and responses["fetch-user"].active == true

Scripts are statements separated by newlines or semicolons:

    total = price * quantity; items[0] = "first"
    counter += 1
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, FrozenSet, List, MutableMapping, Optional, Tuple, Union
from shared.constants import MAX_EXPRESSION_LENGTH
from shared.exceptions import ExpressionError, ExpressionSyntaxError

KEYWORDS = {
    "and": "and",
    "or": "or",
    "not": "not",
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}

# Longest first so that "===" wins over "==" and "=".
OPERATORS = (
    "===", "!==",
    "==", "!=", "<=", ">=", "+=", "-=", "*=", "/=", "&&", "||",
    "<", ">", "+", "-", "*", "/", "%", "=", "!",
    ".", ",", "(", ")", "[", "]", "{", "}", ":", ";",
)

ASSIGNMENT_OPS = {"=", "+=", "-=", "*=", "/="}
COMPARISON_OPS = {"==", "!=", "===", "!==", "<", "<=", ">", ">="}

STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class Token:
    type: str
    value: Any
    column: int
    line: int = 1


# AST

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class Member:
    obj: "Expr"
    name: str


@dataclass(frozen=True)
class Index:
    obj: "Expr"
    index: "Expr"


@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple["Expr", ...]


@dataclass(frozen=True)
class ListLiteral:
    items: Tuple["Expr", ...]


@dataclass(frozen=True)
class DictLiteral:
    pairs: Tuple[Tuple["Expr", "Expr"], ...]


@dataclass(frozen=True)
class Unary:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Logical:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Assign:
    target: Union[Name, Member, Index]
    op: str
    value: "Expr"


@dataclass(frozen=True)
class ExprStatement:
    expr: "Expr"


Expr = Union[Literal, Name, Member, Index, Call, ListLiteral, DictLiteral, Unary, Binary, Logical]
Statement = Union[Assign, ExprStatement]


def tokenize(text: str) -> List[Token]:
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ExpressionSyntaxError(
            f"Expression exceeds length limit: {len(text)} > {MAX_EXPRESSION_LENGTH}"
        )

    tokens: List[Token] = []
    pos, line, line_start, depth = 0, 1, 0, 0

    while pos < len(text):
        ch = text[pos]
        column = pos - line_start + 1

        if ch == "\n":
            # Newlines only separate statements outside of brackets
            if depth == 0:
                tokens.append(Token("NEWLINE", "\n", column, line))
            pos += 1
            line += 1
            line_start = pos
            continue

        if ch in " \t\r":
            pos += 1
            continue

        if ch == "#":
            while pos < len(text) and text[pos] != "\n":
                pos += 1
            continue

        if ch.isdigit():
            start = pos
            while pos < len(text) and text[pos].isdigit():
                pos += 1
            is_float = False
            if pos + 1 < len(text) and text[pos] == "." and text[pos + 1].isdigit():
                is_float = True
                pos += 1
                while pos < len(text) and text[pos].isdigit():
                    pos += 1
            if pos < len(text) and text[pos] in "eE":
                exp = pos + 1
                if exp < len(text) and text[exp] in "+-":
                    exp += 1
                if exp < len(text) and text[exp].isdigit():
                    is_float = True
                    pos = exp
                    while pos < len(text) and text[pos].isdigit():
                        pos += 1
            raw = text[start:pos]
            tokens.append(Token("NUMBER", float(raw) if is_float else int(raw), column, line))
            continue

        if ch.isalpha() or ch == "_":
            start = pos
            while pos < len(text) and (text[pos].isalnum() or text[pos] == "_"):
                pos += 1
            word = text[start:pos]
            if word in KEYWORDS:
                tokens.append(Token("KEYWORD", word, column, line))
            else:
                tokens.append(Token("IDENT", word, column, line))
            continue

        if ch in "'\"":
            quote = ch
            pos += 1
            chars = []
            while True:
                if pos >= len(text) or text[pos] == "\n":
                    raise ExpressionSyntaxError("Unterminated string literal", column, line=line)
                current = text[pos]
                if current == quote:
                    pos += 1
                    break
                if current == "\\":
                    if pos + 1 >= len(text):
                        raise ExpressionSyntaxError("Unterminated string literal", column, line=line)
                    escaped = text[pos + 1]
                    chars.append(STRING_ESCAPES.get(escaped, "\\" + escaped))
                    pos += 2
                    continue
                chars.append(current)
                pos += 1
            tokens.append(Token("STRING", "".join(chars), column, line))
            continue

        for op in OPERATORS:
            if text.startswith(op, pos):
                if op in "([{":
                    depth += 1
                elif op in ")]}":
                    depth = max(depth - 1, 0)
                tokens.append(Token("OP", op, column, line))
                pos += len(op)
                break
        else:
            raise ExpressionSyntaxError(f"Unexpected character '{ch}'", column, line=line)

    tokens.append(Token("EOF", None, len(text) - line_start + 1, line))
    return tokens


class Parser:
    """Recursive-descent parser over the token stream"""

    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.pos = 0

    def peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> Token:
        token = self.peek()
        if token.type != "EOF":
            self.pos += 1
        return token

    def check(self, token_type: str, value: Any = None) -> bool:
        token = self.peek()
        return token.type == token_type and (value is None or token.value == value)

    def match(self, token_type: str, *values: Any) -> Optional[Token]:
        token = self.peek()
        if token.type == token_type and (not values or token.value in values):
            return self.advance()
        return None

    def expect(self, token_type: str, value: Any = None) -> Token:
        if self.check(token_type, value):
            return self.advance()
        expected = value if value is not None else token_type
        raise self.error(f"Expected '{expected}'")

    def error(self, message: str) -> ExpressionSyntaxError:
        token = self.peek()
        found = "end of input" if token.type == "EOF" else repr(token.value)
        return ExpressionSyntaxError(f"{message}, found {found}", token.column, line=token.line)

    # Entry points

    def parse_expression_only(self) -> Expr:
        while self.match("NEWLINE"):
            pass
        if self.check("EOF"):
            raise self.error("Expected an expression")
        expr = self.parse_expression()
        while self.match("NEWLINE"):
            pass
        if not self.check("EOF"):
            raise self.error("Unexpected token after expression")
        return expr

    def parse_script(self) -> List[Statement]:
        statements: List[Statement] = []
        while True:
            while self.match("NEWLINE") or self.match("OP", ";"):
                pass
            if self.check("EOF"):
                return statements
            statements.append(self.parse_statement())
            if not (self.check("NEWLINE") or self.check("OP", ";") or self.check("EOF")):
                raise self.error("Expected end of statement")

    # Statements

    def parse_statement(self) -> Statement:
        expr = self.parse_expression()
        token = self.peek()
        if token.type == "OP" and token.value in ASSIGNMENT_OPS:
            if not isinstance(expr, (Name, Member, Index)):
                raise self.error("Invalid assignment target")
            self.advance()
            return Assign(target=expr, op=token.value, value=self.parse_expression())
        return ExprStatement(expr)

    # Expressions, lowest precedence first

    def parse_expression(self) -> Expr:
        return self.parse_or()

    def parse_or(self) -> Expr:
        expr = self.parse_and()
        while self.match("KEYWORD", "or") or self.match("OP", "||"):
            expr = Logical(op="or", left=expr, right=self.parse_and())
        return expr

    def parse_and(self) -> Expr:
        expr = self.parse_not()
        while self.match("KEYWORD", "and") or self.match("OP", "&&"):
            expr = Logical(op="and", left=expr, right=self.parse_not())
        return expr

    def parse_not(self) -> Expr:
        if self.match("KEYWORD", "not") or self.match("OP", "!"):
            return Unary(op="not", operand=self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Expr:
        expr = self.parse_additive()
        while True:
            token = self.match("OP", *COMPARISON_OPS)
            if not token:
                return expr
            op = {"===": "==", "!==": "!="}.get(token.value, token.value)
            expr = Binary(op=op, left=expr, right=self.parse_additive())

    def parse_additive(self) -> Expr:
        expr = self.parse_term()
        while True:
            token = self.match("OP", "+", "-")
            if not token:
                return expr
            expr = Binary(op=token.value, left=expr, right=self.parse_term())

    def parse_term(self) -> Expr:
        expr = self.parse_unary()
        while True:
            token = self.match("OP", "*", "/", "%")
            if not token:
                return expr
            expr = Binary(op=token.value, left=expr, right=self.parse_unary())

    def parse_unary(self) -> Expr:
        token = self.match("OP", "-", "+")
        if token:
            return Unary(op=token.value, operand=self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        expr = self.parse_primary()
        while True:
            if self.match("OP", "."):
                name = self.peek()
                if name.type not in ("IDENT", "KEYWORD"):
                    raise self.error("Expected a property name")
                self.advance()
                expr = Member(obj=expr, name=name.value)
            elif self.match("OP", "["):
                index = self.parse_expression()
                self.expect("OP", "]")
                expr = Index(obj=expr, index=index)
            else:
                return expr

    def parse_primary(self) -> Expr:
        token = self.peek()

        if token.type in ("NUMBER", "STRING"):
            self.advance()
            return Literal(token.value)

        if token.type == "KEYWORD" and token.value not in ("and", "or", "not"):
            self.advance()
            return Literal(KEYWORDS[token.value])

        if token.type == "IDENT":
            self.advance()
            if self.match("OP", "("):
                return Call(name=token.value, args=tuple(self._parse_items(")")))
            return Name(token.value)

        if self.match("OP", "("):
            expr = self.parse_expression()
            self.expect("OP", ")")
            return expr

        if self.match("OP", "["):
            return ListLiteral(items=tuple(self._parse_items("]")))

        if self.match("OP", "{"):
            return DictLiteral(pairs=tuple(self._parse_pairs()))

        raise self.error("Expected a value")

    def _parse_items(self, closing: str) -> List[Expr]:
        items: List[Expr] = []
        while not self.match("OP", closing):
            items.append(self.parse_expression())
            if not self.match("OP", ","):
                self.expect("OP", closing)
                break
        return items

    def _parse_pairs(self) -> List[Tuple[Expr, Expr]]:
        pairs: List[Tuple[Expr, Expr]] = []
        while not self.match("OP", "}"):
            key_token = self.peek()
            if key_token.type == "IDENT":
                # Bare keys are strings, as in JSON5
                self.advance()
                key: Expr = Literal(key_token.value)
            else:
                key = self.parse_expression()
            self.expect("OP", ":")
            pairs.append((key, self.parse_expression()))
            if not self.match("OP", ","):
                self.expect("OP", "}")
                break
        return pairs


@lru_cache(maxsize=256)
def parse_expression(text: str) -> Expr:
    return Parser(text).parse_expression_only()


@lru_cache(maxsize=256)
def parse_script(text: str) -> Tuple[Statement, ...]:
    return tuple(Parser(text).parse_script())


def _to_str(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


BUILTINS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "str": _to_str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "lower": lambda value: _to_str(value).lower(),
    "upper": lambda value: _to_str(value).upper(),
    "contains": lambda container, item: item in container,
}


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    return {bool: "boolean", int: "number", float: "number", str: "string",
            list: "list", dict: "object"}.get(type(value), type(value).__name__)


class Evaluator:
    """Tree-walking evaluator bound to one namespace"""

    def __init__(self, namespace: MutableMapping[str, Any], readonly: FrozenSet[str] = frozenset()):
        self.namespace = namespace
        self.readonly = readonly

    def execute(self, statements: Tuple[Statement, ...]) -> None:
        for statement in statements:
            if isinstance(statement, Assign):
                self._assign(statement)
            else:
                self.evaluate(statement.expr)

    def evaluate(self, node: Expr) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Name):
            if node.name not in self.namespace:
                raise ExpressionError(f"Unknown variable '{node.name}'")
            return self.namespace[node.name]

        if isinstance(node, Member):
            return self._read_key(self.evaluate(node.obj), node.name)

        if isinstance(node, Index):
            return self._read_index(self.evaluate(node.obj), self.evaluate(node.index))

        if isinstance(node, Logical):
            left = self.evaluate(node.left)
            if node.op == "and":
                return self.evaluate(node.right) if left else left
            return left if left else self.evaluate(node.right)

        if isinstance(node, Unary):
            operand = self.evaluate(node.operand)
            if node.op == "not":
                return not operand
            if not isinstance(operand, (int, float)):
                raise ExpressionError(f"Unsupported operand type for unary {node.op}: {_type_name(operand)}")
            return -operand if node.op == "-" else +operand

        if isinstance(node, Binary):
            return binary_op(node.op, self.evaluate(node.left), self.evaluate(node.right))

        if isinstance(node, Call):
            return self._call(node)

        if isinstance(node, ListLiteral):
            return [self.evaluate(item) for item in node.items]

        if isinstance(node, DictLiteral):
            result = {}
            for key_node, value_node in node.pairs:
                key = self.evaluate(key_node)
                if not isinstance(key, (str, int, float, bool)) and key is not None:
                    raise ExpressionError(f"Object keys must be scalar, got {_type_name(key)}")
                result[key] = self.evaluate(value_node)
            return result

        raise ExpressionError(f"Unsupported expression node: {type(node).__name__}")

    def _call(self, node: Call) -> Any:
        func = BUILTINS.get(node.name)
        if func is None:
            raise ExpressionError(f"Unknown function '{node.name}'")
        args = [self.evaluate(arg) for arg in node.args]
        try:
            return func(*args)
        except (TypeError, ValueError) as e:
            raise ExpressionError(f"{node.name}() failed: {e}")

    def _read_key(self, container: Any, key: str) -> Any:
        if not isinstance(container, dict):
            raise ExpressionError(f"Cannot read property '{key}' of {_type_name(container)}")
        if key not in container:
            raise ExpressionError(f"Property '{key}' not found")
        return container[key]

    def _read_index(self, container: Any, index: Any) -> Any:
        if isinstance(container, dict):
            try:
                return container[index]
            except KeyError:
                raise ExpressionError(f"Key {index!r} not found")
            except TypeError:
                raise ExpressionError(f"Invalid key type: {_type_name(index)}")

        if isinstance(container, (list, str)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise ExpressionError(f"Index must be a number, got {_type_name(index)}")
            try:
                return container[index]
            except IndexError:
                raise ExpressionError(f"Index {index} out of range")

        raise ExpressionError(f"Cannot index into {_type_name(container)}")

    def _assign(self, statement: Assign) -> None:
        target = statement.target
        value = self.evaluate(statement.value)

        if statement.op != "=":
            value = binary_op(statement.op[0], self.evaluate(target), value)

        if isinstance(target, Name):
            if target.name in self.readonly:
                raise ExpressionError(f"'{target.name}' is read-only")
            self.namespace[target.name] = value
            return

        container = self.evaluate(target.obj)

        if isinstance(target, Member):
            if not isinstance(container, dict):
                raise ExpressionError(f"Cannot set property '{target.name}' on {_type_name(container)}")
            container[target.name] = value
            return

        index = self.evaluate(target.index)
        if isinstance(container, dict):
            try:
                container[index] = value
            except TypeError:
                raise ExpressionError(f"Invalid key type: {_type_name(index)}")
        elif isinstance(container, list):
            if not isinstance(index, int) or isinstance(index, bool):
                raise ExpressionError(f"Index must be a number, got {_type_name(index)}")
            try:
                container[index] = value
            except IndexError:
                raise ExpressionError(f"Index {index} out of range")
        else:
            raise ExpressionError(f"Cannot assign into {_type_name(container)}")


def binary_op(op: str, left: Any, right: Any) -> Any:
    try:
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            return left / right
        if op == "%":
            return left % right
        if op == "==":
            return left == right
        if op == "!=":
            return left != right
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
    except ZeroDivisionError:
        raise ExpressionError("Division by zero")
    except TypeError:
        raise ExpressionError(
            f"Unsupported operand types for {op}: {_type_name(left)} and {_type_name(right)}"
        )
    raise ExpressionError(f"Unknown operator '{op}'")


def evaluate(text: str, namespace: MutableMapping[str, Any],
             readonly: FrozenSet[str] = frozenset()) -> Any:
    """Parses and evaluates a single expression against namespace"""
    return Evaluator(namespace, readonly).evaluate(parse_expression(text))


def execute(text: str, namespace: MutableMapping[str, Any],
            readonly: FrozenSet[str] = frozenset()) -> None:
    """Parses and runs a script, mutating namespace in place"""
    Evaluator(namespace, readonly).execute(parse_script(text))
