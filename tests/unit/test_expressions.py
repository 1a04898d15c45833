"""
Unit tests for the constrained expression language.
"""

import re
import pytest
from services.runtime.engine.expressions import (
    evaluate,
    execute,
    parse_expression,
    Binary,
    Literal,
    Name,
)
from shared.exceptions import ExpressionError, ExpressionSyntaxError, NodeExecutionError


@pytest.mark.parametrize("text, expected", [
    ("1 + 2 * 3", 7),
    ("(1 + 2) * 3", 9),
    ("10 / 4", 2.5),
    ("7 % 3", 1),
    ("-2 + 5", 3),
    ("1e3", 1000.0),
    ("'con' + \"cat\"", "concat"),
    ("3 > 2 and 2 > 1", True),
    ("1 === 1", True),
    ("1 !== 1", False),
    ("not true", False),
    ("!false && true", True),
    ("false || null", None),
    ("null == None", True),
    ("[1, 2, 3][1]", 2),
    ("{a: 1, \"b\": 2}", {"a": 1, "b": 2}),
])
def test_evaluate_literals_and_operators(text, expected):
    """Operators follow the usual precedence rules"""
    assert evaluate(text, {}) == expected


def test_parse_builds_precedence_tree():
    """Multiplication binds tighter than addition"""
    tree = parse_expression("x + 2 * 3")

    assert tree == Binary(op="+", left=Name("x"), right=Binary(op="*", left=Literal(2), right=Literal(3)))


def test_evaluate_against_context():
    """Names, members and indexes resolve in the context mapping"""
    namespace = {
        "x": 5,
        "user": {"name": "ada", "roles": ["admin", "dev"]},
        "responses": {"fetch-user": {"active": True}},
    }

    assert evaluate("x > 0", namespace) is True
    assert evaluate("user.name", namespace) == "ada"
    assert evaluate("user.roles[1]", namespace) == "dev"
    assert evaluate('responses["fetch-user"].active == true', namespace) is True


def test_evaluate_builtins():
    namespace = {"items": [3, 1, 2], "name": "ada"}

    assert evaluate("len(items)", namespace) == 3
    assert evaluate("max(items)", namespace) == 3
    assert evaluate("upper(name)", namespace) == "ADA"
    assert evaluate("str(true)", namespace) == "true"
    assert evaluate("contains(items, 2)", namespace) is True
    assert evaluate("int('42') + 1", namespace) == 43


def test_unknown_variable_raises():
    with pytest.raises(ExpressionError, match="Unknown variable 'missing'"):
        evaluate("missing > 1", {})


def test_missing_property_raises():
    with pytest.raises(ExpressionError, match="Property 'age' not found"):
        evaluate("user.age", {"user": {}})


def test_type_mismatch_raises():
    with pytest.raises(ExpressionError, match="Unsupported operand types for -: string and number"):
        evaluate("'a' - 1", {})


def test_division_by_zero_raises():
    with pytest.raises(ExpressionError, match="Division by zero"):
        evaluate("1 / 0", {})


def test_index_out_of_range_raises():
    with pytest.raises(ExpressionError, match="out of range"):
        evaluate("items[5]", {"items": [1]})


def test_no_host_access():
    """Only whitelisted builtins exist and objects expose no attributes"""
    with pytest.raises(ExpressionError, match="Unknown function '__import__'"):
        evaluate("__import__('os')", {})

    with pytest.raises(ExpressionError, match="Cannot read property '__class__' of number"):
        evaluate("flag.__class__", {"flag": 1})


def test_expression_errors_are_node_errors():
    """Evaluation failures are node execution errors for the engine"""
    with pytest.raises(NodeExecutionError):
        evaluate("nope", {})


def test_syntax_error_reports_column():
    with pytest.raises(ExpressionSyntaxError) as exc_info:
        evaluate("1 + * 2", {})

    assert exc_info.value.column == 5
    assert "Expected a value" in exc_info.value.message


@pytest.mark.parametrize("text, message", [
    ("", "Expected an expression"),
    ("'abc", "Unterminated string literal"),
    ("a @ b", "Unexpected character '@'"),
    ("(1 + 2", "Expected ')'"),
    ("1 2", "Unexpected token after expression"),
])
def test_syntax_errors(text, message):
    with pytest.raises(ExpressionSyntaxError, match=re.escape(message)):
        evaluate(text, {"a": 1, "b": 2})


def test_execute_assignments():
    """Scripts run statements in order and mutate the namespace"""
    namespace = {"price": 2, "quantity": 3}

    execute("total = price * quantity\ncount = 0; count += 1", namespace)

    assert namespace["total"] == 6
    assert namespace["count"] == 1


def test_execute_nested_targets():
    namespace = {"order": {"items": ["a", "b"]}}

    execute("order.items[0] = 'x'; order.status = 'ready'; order['total'] = 2", namespace)

    assert namespace["order"] == {"items": ["x", "b"], "status": "ready", "total": 2}


def test_execute_multiline_literals_and_comments():
    namespace = {}

    execute("# setup\nitems = [\n  1,\n  2\n]  # trailing\nsize = len(items)", namespace)

    assert namespace == {"items": [1, 2], "size": 2}


def test_execute_empty_script_is_noop():
    namespace = {"x": 1}

    execute("\n;\n", namespace)

    assert namespace == {"x": 1}


def test_execute_readonly_name():
    namespace = {"responses": {}}

    with pytest.raises(ExpressionError, match="'responses' is read-only"):
        execute("responses = 1", namespace, frozenset({"responses"}))

    execute("responses.cached = true", namespace, frozenset({"responses"}))
    assert namespace["responses"] == {"cached": True}


def test_execute_invalid_target():
    with pytest.raises(ExpressionSyntaxError, match="Invalid assignment target"):
        execute("1 = 2", {})


def test_execute_missing_separator():
    with pytest.raises(ExpressionSyntaxError, match="Expected end of statement"):
        execute("x = 1 y = 2", {})


def test_failed_statement_keeps_earlier_effects():
    """Statements before a failing one have already been applied"""
    namespace = {}

    with pytest.raises(ExpressionError):
        execute("a = 1; b = missing", namespace)

    assert namespace == {"a": 1}
