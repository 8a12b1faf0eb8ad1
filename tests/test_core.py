"""Tests for the program representation: context, containers and dominance."""

import math

import pytest

from irmutate.codec import parse_assembly
from irmutate.core import (
    Instruction,
    compute_dominators,
    dominates,
    get_module,
    reachable_blocks,
    visible_values,
    walk_module,
)

# -------------------------------------------------------------------------
# Context
# -------------------------------------------------------------------------


class TestContext:
    def test_types_are_uniqued(self, context) -> None:
        assert context.int_type(32) is context.lookup_type("i32")
        assert context.bool_type() is context.int_type(1)
        assert context.double_type() is context.lookup_type("double")
        assert context.pointer_type() is context.lookup_type("ptr")

    def test_types_remember_their_context(self, context) -> None:
        assert context.float_type().context is context

    @pytest.mark.parametrize("name", ["i0", "i65", "int", "f32", ""])
    def test_unknown_type_spelling(self, context, name) -> None:
        with pytest.raises(ValueError):
            context.lookup_type(name)

    def test_int_constants_are_masked_and_uniqued(self, context) -> None:
        i8 = context.int_type(8)
        assert context.get_int(i8, 256).value == 0
        assert context.get_int(i8, -1) is context.get_int(i8, 255)
        assert context.get_int(i8, -1).signed_value == -1
        assert context.get_int(i8, 127).signed_value == 127

    def test_float_constants_round_to_precision(self, context) -> None:
        f32 = context.float_type("float")
        const = context.get_float(f32, 0.1)
        assert const.value != 0.1
        assert const.bits == 0x3DCCCCCD
        assert context.get_float(f32, 0.1) is const

    def test_float_overflow_becomes_infinity(self, context) -> None:
        half = context.float_type("half")
        assert context.get_float(half, 1e10).value == math.inf
        assert context.get_float(half, -1e10).value == -math.inf
        assert not context.get_float(half, 1e10).is_finite

    def test_undef_requires_first_class_type(self, context) -> None:
        assert context.get_undef(context.int_type(32)).type is context.int_type(32)
        with pytest.raises(ValueError):
            context.get_undef(context.void_type())

    def test_null_requires_pointer(self, context) -> None:
        with pytest.raises(ValueError):
            context.get_null(context.int_type(64))


# -------------------------------------------------------------------------
# Containers
# -------------------------------------------------------------------------


class TestContainers:
    def test_unknown_opcode(self, context) -> None:
        with pytest.raises(ValueError):
            Instruction("frobnicate", context.int_type(32))

    def test_insert_rejects_attached_instruction(self, sample_module) -> None:
        function = sample_module.get_function("sum")
        inst = function.entry_block.instructions[0]
        with pytest.raises(ValueError):
            function.blocks[1].insert(0, inst)

    def test_erase_detaches(self, sample_module) -> None:
        block = sample_module.get_function("sum").entry_block
        inst = block.instructions[1]
        inst.erase_from_parent()
        assert inst.parent is None
        assert all(i is not inst for i in block)
        with pytest.raises(ValueError):
            inst.erase_from_parent()

    def test_toggle_flag(self, sample_module) -> None:
        add = sample_module.get_function("sum").entry_block.instructions[1]
        assert add.flags == {"nsw"}
        add.toggle_flag("nuw")
        add.toggle_flag("nsw")
        assert add.flags == {"nuw"}
        with pytest.raises(ValueError):
            add.toggle_flag("exact")

    def test_select_flags_depend_on_type(self, sample_module) -> None:
        select = sample_module.get_function("scale").entry_block.instructions[4]
        assert select.opcode == "select"
        assert "nnan" in select.legal_flags

    def test_predecessors_and_successors(self, sample_module) -> None:
        entry, then, exit_ = sample_module.get_function("sum").blocks
        assert entry.successors() == [then, exit_]
        assert exit_.predecessors() == [entry, then]
        assert entry.predecessors() == []

    def test_duplicate_function(self, sample_module) -> None:
        from irmutate.core import Function

        with pytest.raises(ValueError):
            sample_module.add_function(Function("sum", sample_module.context.void_type()))

    def test_definitions_skip_declarations(self, sample_module) -> None:
        assert [f.name for f in sample_module.definitions()] == ["sum", "scale"]
        assert sample_module.get_function("ext").is_declaration

    def test_get_module_and_walk(self, sample_module) -> None:
        insts = list(walk_module(sample_module))
        assert len(insts) == 19
        assert get_module(insts[0]) is sample_module

    def test_replace_all_uses_with(self, sample_module) -> None:
        function = sample_module.get_function("sum")
        x = function.entry_block.instructions[1]
        a = function.arguments[0]
        assert len(function.users_of(x)) == 3
        assert function.replace_all_uses_with(x, a) == 3
        assert function.users_of(x) == []


# -------------------------------------------------------------------------
# Dominance and visibility
# -------------------------------------------------------------------------


DIAMOND_IR = """\
define i32 @f(i1 %c, i32 %a) {
entry:
  %x = add i32 %a, 1
  br i1 %c, label %left, label %right

left:
  %l = mul i32 %x, 2
  br label %join

right:
  %r = sub i32 %x, 2
  br label %join

join:
  ret i32 %x

dead:
  %d = add i32 %a, 7
  %e = add i32 %d, 1
  unreachable
}
"""


class TestDominance:
    @pytest.fixture
    def function(self, context):
        return parse_assembly(DIAMOND_IR, context).get_function("f")

    def test_reachable_blocks(self, function) -> None:
        names = [b.name for b in reachable_blocks(function)]
        assert names == ["entry", "left", "join", "right"]

    def test_dominators(self, function) -> None:
        entry, left, right, join, dead = function.blocks
        dom = compute_dominators(function)
        assert dom[entry] == {entry}
        assert dom[left] == {entry, left}
        assert dom[join] == {entry, join}
        assert dom[dead] == {dead}
        assert dominates(dom, entry, join)
        assert not dominates(dom, left, join)

    def test_visible_values_in_join(self, function) -> None:
        entry, left, right, join, dead = function.blocks
        visible = visible_values(join, 0)
        assert visible == [*function.arguments, entry.instructions[0]]

    def test_visible_values_within_block(self, function) -> None:
        entry, left = function.blocks[:2]
        assert visible_values(left, 0) == [*function.arguments, entry.instructions[0]]
        assert visible_values(left, 1) == [*function.arguments, entry.instructions[0], left.instructions[0]]

    def test_unreachable_block_sees_only_itself(self, function) -> None:
        dead = function.blocks[-1]
        assert visible_values(dead, 1) == [*function.arguments, dead.instructions[0]]
