"""Tests for the irmutate command line."""

import pytest
from click.testing import CliRunner
from conftest import SAMPLE_IR

from irmutate.cli.main import __version__, main
from irmutate.codec import parse_and_verify
from irmutate.core import Context


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "sample.ll"
    path.write_text(SAMPLE_IR)
    return path


def mutant_files(directory):
    return sorted(directory.glob("mutant_*.ll"))


class TestMutateCommand:
    def test_writes_valid_mutants(self, runner, input_file, tmp_path) -> None:
        out = tmp_path / "out"
        result = runner.invoke(main, ["mutate", str(input_file), "-o", str(out), "-n", "8", "--seed", "7"])
        assert result.exit_code == 0, result.output

        files = mutant_files(out)
        assert [f.name for f in files] == [f"mutant_{i:06d}.ll" for i in range(8)]
        for path in files:
            data = path.read_bytes()
            assert parse_and_verify(data, len(data), Context()) is not None

    def test_same_seed_same_mutants(self, runner, input_file, tmp_path) -> None:
        for name in ("a", "b"):
            result = runner.invoke(
                main, ["mutate", str(input_file), "-o", str(tmp_path / name), "-n", "5", "--seed", "3"]
            )
            assert result.exit_code == 0, result.output
        a = [p.read_bytes() for p in mutant_files(tmp_path / "a")]
        b = [p.read_bytes() for p in mutant_files(tmp_path / "b")]
        assert a == b

    def test_parallel_matches_sequential(self, runner, input_file, tmp_path) -> None:
        args = ["mutate", str(input_file), "-n", "6", "--seed", "11"]
        result = runner.invoke(main, [*args, "-o", str(tmp_path / "seq"), "-j", "1"])
        assert result.exit_code == 0, result.output
        result = runner.invoke(main, [*args, "-o", str(tmp_path / "par"), "-j", "2"])
        assert result.exit_code == 0, result.output

        seq = {p.name: p.read_bytes() for p in mutant_files(tmp_path / "seq")}
        par = {p.name: p.read_bytes() for p in mutant_files(tmp_path / "par")}
        assert seq == par
        assert len(seq) == 6

    def test_over_budget_mutants_are_skipped(self, runner, input_file, tmp_path) -> None:
        out = tmp_path / "out"
        result = runner.invoke(main, ["mutate", str(input_file), "-o", str(out), "-n", "3", "--max-size", "32"])
        assert result.exit_code == 0, result.output
        assert mutant_files(out) == []

    def test_config_file(self, runner, input_file, tmp_path) -> None:
        config = tmp_path / "mutator.toml"
        config.write_text('[strategies]\norder = ["modifier"]\n')
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["mutate", str(input_file), "-o", str(out), "-n", "4", "--config", str(config)]
        )
        assert result.exit_code == 0, result.output
        # The modifier never changes the instruction count
        for path in mutant_files(out):
            assert path.read_text().count(" = ") == SAMPLE_IR.count(" = ")

    def test_bad_config(self, runner, input_file, tmp_path) -> None:
        config = tmp_path / "mutator.toml"
        config.write_text('[strategies]\norder = ["shuffler"]\n')
        result = runner.invoke(main, ["mutate", str(input_file), "--config", str(config)])
        assert result.exit_code != 0
        assert "shuffler" in result.output

    def test_mistyped_config(self, runner, input_file, tmp_path) -> None:
        config = tmp_path / "mutator.toml"
        config.write_text('[deleter]\nshrink_start = "half"\n')
        result = runner.invoke(main, ["mutate", str(input_file), "--config", str(config)])
        assert result.exit_code != 0
        assert "shrink_start" in result.output
        assert not isinstance(result.exception, TypeError)

    def test_invalid_input(self, runner, tmp_path) -> None:
        path = tmp_path / "bad.ll"
        path.write_text("define i32 @f() {\nentry:\n  ret void\n}\n")
        result = runner.invoke(main, ["mutate", str(path), "-o", str(tmp_path / "out")])
        assert result.exit_code != 0
        assert "not a valid module" in result.output


class TestVerifyCommand:
    def test_valid_file(self, runner, input_file) -> None:
        result = runner.invoke(main, ["verify", str(input_file)])
        assert result.exit_code == 0, result.output

    def test_invalid_files(self, runner, input_file, tmp_path) -> None:
        broken = tmp_path / "broken.ll"
        broken.write_text("define i32 @f() {\nentry:\n  ret i32 %nope\n}\n")
        invalid = tmp_path / "invalid.ll"
        invalid.write_text("define i32 @f() {\nentry:\n  ret void\n}\n")
        result = runner.invoke(main, ["verify", str(input_file), str(broken), str(invalid)])
        assert result.exit_code == 1


def test_version(runner) -> None:
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
