"""Tests for the structural verifier."""

import pytest

from irmutate.codec import parse_assembly
from irmutate.core import VerificationError, assert_valid, verify_module


def errors_for(text, context):
    return verify_module(parse_assembly(text, context))


class TestVerifier:
    def test_sample_is_valid(self, sample_module) -> None:
        assert verify_module(sample_module) == []
        assert_valid(sample_module)

    def test_missing_terminator(self, context) -> None:
        errors = errors_for(
            "define i32 @f(i32 %a) {\nentry:\n  %x = add i32 %a, 1\n}\n",
            context,
        )
        assert any("does not end with a terminator" in e for e in errors)

    def test_terminator_mid_block(self, context) -> None:
        errors = errors_for(
            "define void @f() {\nentry:\n  ret void\n  ret void\n}\n",
            context,
        )
        assert any("in the middle of the block" in e for e in errors)

    def test_dangling_reference(self, sample_module) -> None:
        x = sample_module.get_function("sum").entry_block.instructions[1]
        x.erase_from_parent()
        errors = verify_module(sample_module)
        assert any("deleted or foreign" in e for e in errors)

    def test_type_mismatch(self, sample_module) -> None:
        ctx = sample_module.context
        add = sample_module.get_function("sum").entry_block.instructions[1]
        add.set_operand(1, ctx.get_float(ctx.double_type(), 1.0))
        errors = verify_module(sample_module)
        assert any("integer binary operator type mismatch" in e for e in errors)

    def test_use_before_def(self, context) -> None:
        errors = errors_for(
            "define i32 @f(i32 %a) {\n"
            "entry:\n"
            "  %y = add i32 %x, 1\n"
            "  %x = add i32 %a, 1\n"
            "  ret i32 %y\n"
            "}\n",
            context,
        )
        assert any("used before its definition" in e for e in errors)

    def test_non_dominating_definition(self, context) -> None:
        errors = errors_for(
            "define i32 @f(i1 %c) {\n"
            "entry:\n"
            "  br i1 %c, label %a, label %b\n"
            "\n"
            "a:\n"
            "  %x = add i32 1, 2\n"
            "  br label %b\n"
            "\n"
            "b:\n"
            "  ret i32 %x\n"
            "}\n",
            context,
        )
        assert any("does not dominate" in e for e in errors)

    def test_return_type_mismatch(self, context) -> None:
        errors = errors_for("define i32 @f(i64 %a) {\nentry:\n  ret i64 %a\n}\n", context)
        assert any("return type mismatch" in e for e in errors)

    def test_bad_cast(self, context) -> None:
        errors = errors_for(
            "define i64 @f(i64 %a) {\nentry:\n  %b = zext i64 %a to i64\n  ret i64 %b\n}\n",
            context,
        )
        assert any("must widen" in e for e in errors)

    def test_entry_block_with_predecessor(self, context) -> None:
        errors = errors_for("define void @f() {\nentry:\n  br label %entry\n}\n", context)
        assert any("entry block" in e for e in errors)

    def test_foreign_context(self, sample_module) -> None:
        from irmutate.core import Context

        other = Context()
        add = sample_module.get_function("sum").entry_block.instructions[1]
        add.set_operand(1, other.get_int(other.int_type(32), 1))
        errors = verify_module(sample_module)
        assert any("different context" in e for e in errors)

    def test_assert_valid_raises(self, context) -> None:
        module = parse_assembly("define i32 @f(i64 %a) {\nentry:\n  ret i64 %a\n}\n", context)
        with pytest.raises(VerificationError) as exc_info:
            assert_valid(module)
        assert exc_info.value.errors
