"""
Tests for the merc runtime (values, context, builtins, interpreter).
"""

import io
import logging
import textwrap

import pytest

from merc import (
    parse, tokenize,
    Interpreter, ExecutionResult, execute,
    Atom, BinaryExpr, Op,
    EvalError, ParserError,
)
from merc.runtime import (
    Value, ValueType,
    number_val, string_val, bool_val, nil_val, function_val,
    display, format_number, values_equal,
    create_context, get_builtin_registry, call_builtin,
)


def run(source, **kwargs):
    """Execute dedented source, capturing print output."""
    out = io.StringIO()
    result = execute(textwrap.dedent(source).strip("\n"), output=out, **kwargs)
    return result, out.getvalue()


def value_of(source):
    """Value of the last statement of a program that must succeed."""
    result, _ = run(source)
    assert result.success, result.error_messages
    return result.value


def error_of(source):
    """The single error message a program produces."""
    result, _ = run(source)
    assert len(result.errors) == 1, result.error_messages
    return result.error_messages[0]


def number_atom(text):
    return Atom(tokenize(text)[0])


# --- Value Tests ---

class TestValues:
    """Test runtime value wrappers."""

    def test_number_value(self):
        v = number_val(42)
        assert v.data == 42.0
        assert isinstance(v.data, float)
        assert v.type == ValueType.NUMBER
        assert v.is_number

    def test_string_value(self):
        v = string_val("hello")
        assert v.data == "hello"
        assert v.is_string

    def test_bool_value(self):
        assert bool_val(True).data is True
        assert bool_val(False).is_boolean

    def test_nil_value(self):
        assert nil_val().is_nil
        assert nil_val() == nil_val()

    def test_function_value(self):
        body = parse("{ 1 }")[0]
        v = function_val("f", ["a"], body)
        assert v.is_function
        assert v.data.params == ["a"]
        assert display(v) == "<function f>"

    @pytest.mark.parametrize("x,expected", [
        (5.0, "5"),
        (0.5, "0.5"),
        (-3.0, "-3"),
        (1e21, "1000000000000000000000"),
        (float("inf"), "inf"),
        (float("-inf"), "-inf"),
        (float("nan"), "NaN"),
        (-0.0, "-0"),
        (1 / 3, "0.3333333333333333"),
        (1e-7, "0.0000001"),
        (-2.5e-10, "-0.00000000025"),
        (1.5e22, "15000000000000000000000"),
    ])
    def test_format_number(self, x, expected):
        assert format_number(x) == expected

    def test_display(self):
        assert display(string_val("hi")) == "hi"
        assert display(bool_val(True)) == "true"
        assert display(bool_val(False)) == "false"
        assert display(nil_val()) == "nil"
        assert str(number_val(2)) == "2"

    def test_equality(self):
        """Values of different types are never equal."""
        assert values_equal(number_val(1), number_val(1))
        assert not values_equal(number_val(1), string_val("1"))
        assert values_equal(nil_val(), nil_val())
        assert not values_equal(bool_val(False), nil_val())

    def test_functions_never_equal(self):
        f = function_val("f", [], parse("{}")[0])
        assert not values_equal(f, f)


# --- Context Tests ---

class TestExecutionContext:
    """Test the environment and call discipline."""

    def test_set_and_get(self):
        ctx = create_context()
        ctx.set_variable("x", number_val(1))
        assert ctx.get_variable("x") == number_val(1)
        assert ctx.get_variable("y") is None

    def test_seed_is_copied(self):
        seed = {"x": number_val(1)}
        ctx = create_context(seed)
        ctx.set_variable("y", number_val(2))
        assert "y" not in seed

    def test_call_scope_swaps_environment(self):
        ctx = create_context({"x": number_val(1)})
        with ctx.call_scope({"a": number_val(2)}):
            assert ctx.get_variable("x") is None
            assert ctx.get_variable("a") == number_val(2)
            assert ctx.call_depth == 1
        assert ctx.get_variable("x") == number_val(1)
        assert ctx.get_variable("a") is None
        assert ctx.call_depth == 0

    def test_call_scope_restores_on_error(self):
        ctx = create_context({"x": number_val(1)})
        with pytest.raises(EvalError):
            with ctx.call_scope({}):
                raise EvalError("boom")
        assert ctx.get_variable("x") == number_val(1)

    def test_nested_call_scopes(self):
        ctx = create_context({"x": number_val(1)})
        with ctx.call_scope({"a": number_val(2)}):
            with ctx.call_scope({"b": number_val(3)}):
                assert ctx.get_variable("a") is None
            assert ctx.get_variable("a") == number_val(2)
        assert ctx.get_variable("x") == number_val(1)

    def test_snapshot_is_independent(self):
        ctx = create_context()
        snap = ctx.snapshot()
        ctx.set_variable("x", number_val(1))
        assert snap == {}

    def test_return_signal(self):
        ctx = create_context()
        assert not ctx.should_return
        ctx.signal_return(number_val(4))
        assert ctx.should_return
        assert ctx.return_value == number_val(4)
        ctx.clear_return()
        assert not ctx.should_return
        assert ctx.return_value is None


# --- Builtin Tests ---

class TestBuiltins:
    """Test the builtin registry."""

    def test_registry_contents(self):
        assert get_builtin_registry().names() == ["print"]

    def test_print(self):
        out = io.StringIO()
        ctx = create_context(output=out)
        result = call_builtin("print", ctx, [string_val("a"), number_val(1), bool_val(True)])
        assert result == nil_val()
        assert out.getvalue() == "a1true\n"

    def test_print_no_args(self):
        out = io.StringIO()
        call_builtin("print", create_context(output=out), [])
        assert out.getvalue() == "\n"

    def test_unknown_builtin(self):
        with pytest.raises(EvalError) as exc_info:
            call_builtin("nope", create_context(), [])
        assert exc_info.value.message == "'nope' is not a function"


# --- Interpreter Tests ---

class TestLiteralsAndBindings:
    """Test literals and let bindings."""

    @pytest.mark.parametrize("text", ["0", "42", "3.25", "0.1", "123456789.5"])
    def test_numeric_literal(self, text):
        assert value_of(text) == number_val(float(text))

    def test_string_literal(self):
        assert value_of('"hi"') == string_val("hi")

    def test_keyword_literals(self):
        assert value_of("true") == bool_val(True)
        assert value_of("false") == bool_val(False)
        assert value_of("nil") == nil_val()

    def test_let_then_lookup(self):
        assert value_of("let x = 5\nx") == number_val(5)

    def test_rebinding_overwrites(self):
        assert value_of("let x = 5\nlet x = 6\nx") == number_val(6)

    def test_let_yields_bound_value(self):
        assert value_of("let x = 3") == number_val(3)

    def test_let_block_value(self):
        assert value_of("let x = {\n  let y = 2\n  y * 10\n}\nx") == number_val(20)

    def test_undefined_variable(self):
        assert error_of("y") == "Undefined variable: y"

    def test_empty_program(self):
        result, _ = run("")
        assert result.success
        assert result.value == nil_val()


class TestArithmetic:
    """Test arithmetic and string operators."""

    def test_precedence(self):
        assert value_of("1 + 2 * 3") == number_val(7)

    def test_grouping(self):
        assert value_of("(1 + 2) * 3") == number_val(9)

    def test_string_concatenation(self):
        assert value_of('"a" + "b"') == string_val("ab")

    def test_mixed_addition(self):
        assert error_of('1 + "b"') == "Invalid operands for addition"

    def test_division(self):
        assert value_of("1 / 2") == number_val(0.5)

    def test_division_by_zero(self):
        assert error_of("1 / 0") == "Division by zero"

    def test_subtraction_type_error(self):
        assert error_of('"a" - 1') == "Invalid operands for subtraction"

    def test_multiplication_type_error(self):
        assert error_of("true * 2") == "Invalid operands for multiplication"

    def test_division_type_error(self):
        assert error_of("nil / 2") == "Invalid operands for division"

    def test_prefix_minus(self):
        assert value_of("-1 + 2") == number_val(-3)
        assert value_of("(-1) + 2") == number_val(1)
        assert value_of("-(2 * 3)") == number_val(-6)

    def test_prefix_plus(self):
        assert value_of("+4") == number_val(4)

    def test_prefix_on_string(self):
        assert error_of('-"a"') == "Invalid operand for negation"

    def test_binary_expr_node(self):
        """BinaryExpr nodes built by hand evaluate like parsed operators."""
        node = BinaryExpr(Op.STAR, number_atom("2"), number_atom("3"))
        assert Interpreter().evaluate(node) == number_val(6)


class TestComparisons:
    """Test comparison operators."""

    @pytest.mark.parametrize("source,expected", [
        ("1 < 2", True),
        ("2 < 1", False),
        ("2 <= 2", True),
        ("3 > 2", True),
        ("2 >= 3", False),
        ("1 == 1", True),
        ("1 != 2", True),
        ('"a" == "a"', True),
        ('1 == "1"', False),
        ("nil == nil", True),
        ("true != false", True),
    ])
    def test_comparison(self, source, expected):
        assert value_of(source) == bool_val(expected)

    def test_chain_groups_right(self):
        """1 == 1 == true compares 1 with the result of 1 == true."""
        assert value_of("1 == 1 == true") == bool_val(False)

    def test_ordering_requires_numbers(self):
        assert error_of('"a" < "b"') == "Invalid operands for less than comparison"


class TestLogical:
    """Test and/or."""

    @pytest.mark.parametrize("source,expected", [
        ("true and true", True),
        ("true and false", False),
        ("false or true", True),
        ("false or false", False),
        ("(1 < 2) and (2 < 3)", True),
    ])
    def test_truth_table(self, source, expected):
        assert value_of(source) == bool_val(expected)

    def test_and_short_circuits(self):
        """The right operand is not evaluated once the result is known."""
        assert value_of("false and missing") == bool_val(False)
        assert value_of("true or missing") == bool_val(True)

    def test_non_boolean_operand(self):
        assert error_of("1 and true") == "Invalid operands for logical and"
        assert error_of("false or 1") == "Invalid operands for logical or"


class TestPostfix:
    """Test postfix operators."""

    def test_string_index(self):
        assert value_of('"hello"[1]') == string_val("e")
        assert value_of('let s = "abc"\ns[2]') == string_val("c")

    def test_index_out_of_range(self):
        assert error_of('"abc"[5]') == "String index out of range: 5"

    def test_fractional_index(self):
        assert error_of('"abc"[1.5]') == "String index must be an integer"

    def test_index_non_string(self):
        assert error_of("5[0]") == "Cannot index into number"

    def test_bang_unsupported(self):
        assert error_of("true!") == "Unsupported postfix operator '!'"


class TestControlFlow:
    """Test if, while and blocks."""

    def test_if_true(self):
        assert value_of("if true { 1 } else { 2 }") == number_val(1)

    def test_if_false(self):
        assert value_of("if false { 1 } else { 2 }") == number_val(2)

    def test_if_without_else(self):
        assert value_of("if false { 1 }") == nil_val()

    def test_else_if(self):
        source = """
        let n = 5
        if n < 3 { "small" } else if n < 10 { "medium" } else { "large" }
        """
        assert value_of(source) == string_val("medium")

    def test_non_boolean_condition(self):
        assert error_of("if 1 { 2 }") == "If condition must be a boolean"

    def test_while_false_never_runs(self):
        result, output = run("while false { print(1) }")
        assert result.success
        assert result.value == nil_val()
        assert output == ""

    def test_while_loop(self):
        source = """
        let i = 0
        let total = 0
        while i < 5 {
            let total = total + i
            let i = i + 1
        }
        total
        """
        assert value_of(source) == number_val(10)

    def test_while_yields_nil(self):
        assert value_of("let i = 0\nwhile i < 2 { let i = i + 1 }") == nil_val()

    def test_while_non_boolean_stops(self):
        """A non-boolean condition ends the loop without an error."""
        result, output = run("while 1 { print(1) }")
        assert result.success
        assert output == ""

    def test_block_value(self):
        assert value_of("{ 1 2 }") == number_val(2)
        assert value_of("{}") == nil_val()

    def test_block_shares_scope(self):
        assert value_of("{ let inner = 4 }\ninner") == number_val(4)


class TestFunctions:
    """Test function definition and calls."""

    def test_definition_yields_function(self):
        result, _ = run("func f() { 1 }")
        assert result.value.is_function

    def test_call(self):
        source = """
        func add(a, b) { return a + b }
        add(2, 3)
        """
        assert value_of(source) == number_val(5)

    def test_last_expression_is_result(self):
        assert value_of("func sq(n) { n * n }\nsq(4)") == number_val(16)

    def test_arity_mismatch(self):
        source = """
        func add(a, b) { return a + b }
        add(2)
        """
        assert error_of(source) == "Wrong number of arguments: expected 2, got 1"

    def test_parameters_invisible_after_call(self):
        source = """
        func add(a, b) { return a + b }
        add(2, 3)
        a
        """
        result, _ = run(source)
        assert result.error_messages == ["Undefined variable: a"]
        assert "a" not in result.variables

    def test_caller_binding_restored(self):
        source = """
        let a = 100
        func f(a) { return a }
        f(1)
        a
        """
        assert value_of(source) == number_val(100)

    def test_environment_restored_after_error(self):
        source = """
        let a = 1
        func f(a) { return a / 0 }
        f(5)
        a
        """
        result, _ = run(source)
        assert result.error_messages == ["Division by zero"]
        assert result.value == number_val(1)

    def test_no_access_to_globals(self):
        """Function bodies see only their parameters."""
        source = """
        let g = 1
        func f() { return g }
        f()
        """
        assert error_of(source) == "Undefined variable: g"

    def test_functions_cannot_call_functions(self):
        """Other functions, including the function itself, are not visible."""
        source = """
        func one() { return 1 }
        func two() { return one() + 1 }
        two()
        """
        assert error_of(source) == "'one' is not a function"

    def test_arguments_evaluated_in_caller(self):
        source = """
        let x = 4
        func double(n) { return n * 2 }
        double(x + 1)
        """
        assert value_of(source) == number_val(10)

    def test_not_a_function(self):
        assert error_of("foo(1)") == "'foo' is not a function"
        assert error_of("let x = 5\nx(1)") == "'x' is not a function"

    def test_user_function_shadows_print(self):
        result, output = run("func print(x) { return x }\nprint(7)")
        assert result.value == number_val(7)
        assert output == ""


class TestReturn:
    """Test early return."""

    def test_early_return(self):
        source = """
        func sign(x) {
            if x < 0 { return -1 }
            return 1
        }
        sign(-5)
        """
        assert value_of(source) == number_val(-1)

    def test_falls_through_when_not_taken(self):
        source = """
        func sign(x) {
            if x < 0 { return -1 }
            return 1
        }
        sign(5)
        """
        assert value_of(source) == number_val(1)

    def test_return_from_loop(self):
        source = """
        func first_over(limit) {
            let i = 0
            while true {
                if i > limit { return i }
                let i = i + 1
            }
        }
        first_over(3)
        """
        assert value_of(source) == number_val(4)

    def test_statements_after_return_skipped(self):
        source = """
        func f() {
            return 1
            print("unreachable")
        }
        f()
        """
        result, output = run(source)
        assert result.value == number_val(1)
        assert output == ""

    def test_top_level_return(self):
        """A top-level return yields its value and does not stop the program."""
        assert value_of("return 5") == number_val(5)
        assert value_of("return 5\n6") == number_val(6)


class TestPrint:
    """Test the print builtin."""

    def test_print_concatenates(self):
        result, output = run('print("a", 1, true, nil)')
        assert output == "a1truenil\n"
        assert result.value == nil_val()

    def test_print_numbers(self):
        _, output = run("print(1 / 2)\nprint(6 / 2)")
        assert output == "0.5\n3\n"

    def test_print_inside_function(self):
        _, output = run('func greet(name) { print("hi ", name) }\ngreet("bob")')
        assert output == "hi bob\n"


class TestErrorRecovery:
    """Test the statement-level driving loop."""

    def test_error_does_not_abort_program(self):
        source = """
        let a = 1
        b
        let c = 3
        c
        """
        result, _ = run(source)
        assert not result.success
        assert result.error_messages == ["Undefined variable: b"]
        assert result.value == number_val(3)
        assert set(result.variables) == {"a", "c"}

    def test_parse_error_recovery(self):
        result, _ = run("let = 1\nlet y = 2\ny")
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], ParserError)
        assert result.value == number_val(2)

    def test_lex_error_recovery(self):
        result, _ = run("let x = @\nlet y = 2\ny")
        assert "E001" in str(result.errors[0])
        assert result.value == number_val(2)

    def test_no_rollback(self):
        """Bindings made before a failure in the same statement persist."""
        source = """
        {
            let a = 1
            a + "x"
        }
        a
        """
        result, _ = run(source)
        assert result.error_messages == ["Invalid operands for addition"]
        assert result.value == number_val(1)

    def test_report_callback(self):
        seen = []
        execute("x\ny", report=seen.append)
        assert [e.message for e in seen] == ["Undefined variable: x", "Undefined variable: y"]

    def test_deep_nesting_in_parser(self):
        source = "(" * 5000 + "1" + ")" * 5000 + "\n2"
        result, _ = run(source)
        assert result.error_messages == ["Maximum recursion depth exceeded"]
        assert result.value == number_val(2)

    def test_deep_nesting_in_evaluation(self):
        node = number_atom("1")
        for _ in range(5000):
            node = BinaryExpr(Op.PLUS, node, number_atom("1"))
        with pytest.raises(EvalError) as exc_info:
            Interpreter().evaluate(node)
        assert exc_info.value.message == "Maximum recursion depth exceeded"


class TestInterpreterState:
    """Test environment persistence across interpreters."""

    def test_seeded_variables(self):
        result = execute("x + 1", variables={"x": number_val(1)})
        assert result.value == number_val(2)

    def test_seed_not_mutated(self):
        seed = {"x": number_val(1)}
        execute("let y = 2", variables=seed)
        assert seed == {"x": number_val(1)}

    def test_evaluate_updates_variables(self):
        interpreter = Interpreter()
        interpreter.evaluate(parse("let x = 2")[0])
        assert interpreter.variables["x"] == number_val(2)

    def test_replace_and_snapshot(self):
        first = Interpreter()
        first.evaluate(parse("func sq(n) { n * n }")[0])
        second = Interpreter()
        second.replace_variables(first.snapshot())
        assert second.evaluate(parse("sq(3)")[0]) == number_val(9)

    def test_execution_result(self):
        result = execute("let x = 1")
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.errors == []
        assert result.variables == {"x": number_val(1)}

    def test_debug_logging(self, caplog):
        caplog.set_level(logging.DEBUG, logger="merc")
        execute("let x = 5")
        assert "Bound x" in caplog.text
