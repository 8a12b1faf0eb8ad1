"""Tests for the random IR builder."""

from irmutate.codec import parse_assembly
from irmutate.core import Constant, Instruction
from irmutate.engine import RandomIRBuilder
from irmutate.ops import any_float_type, only_type


class TestRandomness:
    def test_same_seed_same_draws(self) -> None:
        a = RandomIRBuilder(1234)
        b = RandomIRBuilder(1234)
        assert [a.uniform(0, 100) for _ in range(20)] == [b.uniform(0, 100) for _ in range(20)]

    def test_choice_of_nothing(self) -> None:
        assert RandomIRBuilder(0).choice([]) is None

    def test_pick_weighted_skips_zero_weights(self) -> None:
        for seed in range(200):
            builder = RandomIRBuilder(seed)
            assert builder.pick_weighted(["a", "b", "c"], [0, 3, 0]) == "b"

    def test_pick_weighted_all_zero(self) -> None:
        assert RandomIRBuilder(0).pick_weighted(["a", "b"], [0, 0]) is None

    def test_pick_allowed_type(self, known_types) -> None:
        a = RandomIRBuilder(99, known_types)
        b = RandomIRBuilder(99, known_types)
        picks = [a.pick_allowed_type() for _ in range(30)]
        assert picks == [b.pick_allowed_type() for _ in range(30)]
        assert all(t in known_types for t in picks)
        assert RandomIRBuilder(0).pick_allowed_type() is None

    def test_pick_weighted_float_weights(self) -> None:
        picks = {RandomIRBuilder(seed).pick_weighted(["a", "b"], [0.5, 0.5]) for seed in range(100)}
        assert picks == {"a", "b"}


class TestValueSynthesis:
    def test_creates_constant_when_nothing_is_visible(self, single_block_module, known_types) -> None:
        block = single_block_module.get_function("f").entry_block
        builder = RandomIRBuilder(3, known_types)
        value = builder.find_or_create_source(block, 0)
        assert isinstance(value, Constant)
        assert value.type in known_types

    def test_prefers_visible_values(self, sample_module, known_types) -> None:
        function = sample_module.get_function("scale")
        block = function.entry_block
        builder = RandomIRBuilder(3, known_types)
        double = sample_module.context.double_type()
        for _ in range(20):
            value = builder.find_or_create_source(block, 2, pred=only_type(double))
            assert value in (function.arguments[0], block.instructions[0], block.instructions[1])

    def test_materialize_value(self, context) -> None:
        i8 = context.int_type(8)
        for seed in range(10):
            value = RandomIRBuilder(seed).materialize_value(i8)
            assert isinstance(value, Constant)
            assert value.type is i8

    def test_unsatisfiable_predicate(self, single_block_module) -> None:
        block = single_block_module.get_function("f").entry_block
        builder = RandomIRBuilder(0, [single_block_module.context.int_type(32)])
        assert builder.find_or_create_source(block, 0, pred=any_float_type()) is None

    def test_insertion_point_keeps_terminator_last(self, sample_module) -> None:
        block = sample_module.get_function("sum").blocks[1]
        for seed in range(50):
            index = RandomIRBuilder(seed).pick_insertion_point(block)
            assert 0 <= index < len(block)


class TestConnectToSink:
    def test_rewires_a_later_use(self, context) -> None:
        module = parse_assembly(
            "define i32 @f(i32 %a) {\n"
            "entry:\n"
            "  %x = add i32 %a, 1\n"
            "  ret i32 %x\n"
            "}\n",
            context,
        )
        block = module.get_function("f").entry_block
        i32 = context.int_type(32)
        arg = module.get_function("f").arguments[0]
        new = block.insert(0, Instruction("mul", i32, [arg, context.get_int(i32, 3)]))
        user = RandomIRBuilder(0).connect_to_sink(block, 0, new)
        assert user is not None
        assert any(op is new for op in user.operands)

    def test_no_sink(self, context) -> None:
        module = parse_assembly(
            "define void @f(double %d) {\n"
            "entry:\n"
            "  %x = fneg double %d\n"
            "  ret void\n"
            "}\n",
            context,
        )
        block = module.get_function("f").entry_block
        assert RandomIRBuilder(0).connect_to_sink(block, 0, block.instructions[0]) is None
