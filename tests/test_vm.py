"""Tests for the reckon virtual machine."""

from __future__ import annotations

import math

import pytest

from reckon.chunk import Chunk, OpCode
from reckon.errors import RuntimeErrorKind, Stage, VMError
from reckon.session import compile_source
from reckon.tokens import TokenKind
from reckon.vm import VM, Environment, format_value
from tests.helpers import tok

C, ADD, SUB, MUL, DIV, NEG, SET, GET = (int(op) for op in OpCode)


def run(source: str, vm: VM | None = None):
    """Helper: compile and execute source on a (fresh) VM."""
    return (vm or VM()).execute(compile_source(source))


def vm_fails(chunk: Chunk, vm: VM | None = None) -> VMError:
    with pytest.raises(VMError) as exc:
        (vm or VM()).execute(chunk)
    assert exc.value.stage == Stage.RUNTIME
    return exc.value


class TestArithmetic:
    def test_constant(self):
        assert run("42;") == 42.0

    def test_add(self):
        assert run("1 + 2;") == 3.0

    def test_subtract_pops_right_operand_first(self):
        chunk = Chunk(code=[C, 0, C, 1, SUB], constants=[10.0, 4.0])
        assert VM().execute(chunk) == 6.0

    def test_divide_pops_right_operand_first(self):
        chunk = Chunk(code=[C, 0, C, 1, DIV], constants=[8.0, 2.0])
        assert VM().execute(chunk) == 4.0

    def test_multiply(self):
        assert run("2.5 * 4;") == 10.0

    def test_negate(self):
        assert run("-(3 - 1);") == -2.0

    def test_divide_by_zero_is_infinite(self):
        assert run("1 / 0;") == math.inf
        assert run("-1 / 0;") == -math.inf

    def test_zero_over_zero_is_nan(self):
        assert math.isnan(run("0 / 0;"))


class TestVariables:
    def test_assignment_leaves_no_value(self):
        assert run("let x = 5;") is None

    def test_assignment_then_read(self):
        assert run("let x = 5; x + 1;") == 6.0

    def test_last_write_wins(self):
        assert run("let x = 1; let x = 2; x;") == 2.0

    def test_environment_persists_across_calls(self):
        vm = VM()
        run("let x = 5;", vm)
        assert run("x * 2;", vm) == 10.0
        assert vm.environment["x"] == 5.0

    def test_reset_drops_bindings(self):
        vm = VM()
        run("let x = 5;", vm)
        vm.reset()
        assert len(vm.environment) == 0
        with pytest.raises(VMError) as exc:
            run("x;", vm)
        assert exc.value.kind == RuntimeErrorKind.UNINITIALISED_VARIABLE

    def test_unbound_variable_points_at_name(self):
        with pytest.raises(VMError) as exc:
            run("let a = 1;\nb + a;")
        assert exc.value.kind == RuntimeErrorKind.UNINITIALISED_VARIABLE
        assert exc.value.token.value == "b"
        assert (exc.value.token.row, exc.value.token.col) == (2, 1)

    def test_shared_environment(self):
        env = Environment({"k": 3.0})
        assert run("k + 1;", VM(env)) == 4.0


class TestRuntimeErrors:
    def test_invalid_opcode(self):
        err = vm_fails(Chunk(code=[99]))
        assert err.kind == RuntimeErrorKind.INVALID_OPCODE
        assert "99" in str(err)

    def test_negate_on_empty_stack(self):
        chunk = Chunk(code=[NEG], tokens={0: tok(TokenKind.MINUS, "-")})
        err = vm_fails(chunk)
        assert err.kind == RuntimeErrorKind.EXPECTED_OPERAND
        assert err.token.value == "-"

    def test_binary_with_one_operand(self):
        err = vm_fails(Chunk(code=[C, 0, ADD], constants=[1.0]))
        assert err.kind == RuntimeErrorKind.EXPECTED_OPERAND

    def test_non_binary_opcode_on_binary_path(self):
        vm = VM()
        with pytest.raises(VMError) as exc:
            vm._binary(OpCode.NEGATE, Chunk(), 0)
        assert exc.value.kind == RuntimeErrorKind.INVALID_BINARY_OPERATOR

    def test_set_var_on_empty_stack(self):
        err = vm_fails(Chunk(code=[SET, 0], constants=["x"]))
        assert err.kind == RuntimeErrorKind.EXPECTED_EXPRESSION

    def test_set_var_with_numeric_name(self):
        err = vm_fails(Chunk(code=[C, 0, SET, 0], constants=[1.0]))
        assert err.kind == RuntimeErrorKind.INVALID_IDENTIFIER

    def test_get_var_with_numeric_name(self):
        err = vm_fails(Chunk(code=[GET, 0], constants=[1.0]))
        assert err.kind == RuntimeErrorKind.INVALID_IDENTIFIER

    @pytest.mark.parametrize("index", [5, -1])
    def test_constant_index_outside_pool(self, index):
        err = vm_fails(Chunk(code=[C, index], constants=[1.0, 2.0]))
        assert err.kind == RuntimeErrorKind.INVALID_OPCODE
        assert "constant pool" in str(err)

    @pytest.mark.parametrize("opcode", [GET, SET])
    @pytest.mark.parametrize("index", [3, -1])
    def test_name_index_outside_pool(self, opcode, index):
        code = [C, 0, opcode, index] if opcode == SET else [opcode, index]
        err = vm_fails(Chunk(code=code, constants=[1.0, "x"]))
        assert err.kind == RuntimeErrorKind.INVALID_IDENTIFIER

    def test_truncated_instruction(self):
        err = vm_fails(Chunk(code=[C], constants=[1.0]))
        assert err.kind == RuntimeErrorKind.INVALID_OPCODE

    def test_more_than_one_residual_value(self):
        err = vm_fails(compile_source("1; 2;"))
        assert err.kind == RuntimeErrorKind.INCOMPLETE_EXPRESSION

    def test_empty_chunk_has_no_result(self):
        assert VM().execute(Chunk()) is None

    def test_failure_does_not_leak_stack(self):
        vm = VM()
        with pytest.raises(VMError):
            run("1; 2;", vm)
        assert run("3;", vm) == 3.0


class TestFormatValue:
    @pytest.mark.parametrize("value, text", [
        (7.0, "7"),
        (-2.0, "-2"),
        (0.5, "0.5"),
        (-0.0, "0"),
        (1 / 3, "0.3333333333333333"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "NaN"),
        (1e20, "1e+20"),
        ("x", "x"),
    ])
    def test_format(self, value, text):
        assert format_value(value) == text


class TestEnvironment:
    def test_mapping_protocol(self):
        env = Environment()
        env.bind("a", 1.0)
        env.bind("b", 2.0)
        assert dict(env) == {"a": 1.0, "b": 2.0}
        assert "a" in env
        assert "c" not in env

    def test_snapshot_is_a_copy(self):
        env = Environment({"a": 1.0})
        snap = env.snapshot()
        snap["a"] = 9.0
        assert env["a"] == 1.0

    def test_constructor_copies_bindings(self):
        source = {"a": 1.0}
        env = Environment(source)
        env.bind("a", 2.0)
        assert source["a"] == 1.0

    def test_restore_replaces_bindings(self):
        env = Environment({"a": 1.0})
        saved = env.snapshot()
        env.bind("a", 5.0)
        env.bind("b", 2.0)
        env.restore(saved)
        assert dict(env) == {"a": 1.0}
