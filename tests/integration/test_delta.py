"""Integration tests for delta invocation."""

from pathlib import Path

import pytest

from tests.helpers import FAKE_DELTA_HEADER, FakeDeltaProvider, make_config, requires_xdelta3, write_tree
from treepatch.delta import (
    DeltaComputationFailure,
    Xdelta3Provider,
    compute_deltas,
    delta_output_path,
    get_delta_provider,
)
from treepatch.reconciler import ChangeSet


class TestComputeDeltas:
    """Tests for driving a provider over updated files."""

    def test_one_delta_per_updated_file(self, scenario_workspace: Path, fake_provider):
        changes = ChangeSet(updated=["a.txt"], new=["c.txt"])
        out = scenario_workspace / "out"

        outputs = compute_deltas(
            changes,
            scenario_workspace / "old",
            scenario_workspace / "new",
            out,
            fake_provider,
        )

        assert outputs == [out / "a.txt.upd"]
        assert len(fake_provider.calls) == 1
        assert (out / "a.txt.upd").read_bytes() == FAKE_DELTA_HEADER + b"hello world"

    def test_output_mirrors_directory_structure(self, tmp_path: Path, fake_provider):
        write_tree(tmp_path / "old", {"deep/er/f.txt": "1"})
        write_tree(tmp_path / "new", {"deep/er/f.txt": "2"})
        changes = ChangeSet(updated=["deep/er/f.txt"])

        compute_deltas(changes, tmp_path / "old", tmp_path / "new", tmp_path / "out", fake_provider)

        assert (tmp_path / "out" / "deep" / "er" / "f.txt.upd").is_file()

    def test_failure_aborts(self, tmp_path: Path):
        write_tree(tmp_path / "old", {"a.txt": "1", "b.txt": "1", "c.txt": "1"})
        write_tree(tmp_path / "new", {"a.txt": "2", "b.txt": "2", "c.txt": "2"})
        provider = FakeDeltaProvider(fail_on={"b.txt"})
        changes = ChangeSet(updated=["a.txt", "b.txt", "c.txt"])

        with pytest.raises(DeltaComputationFailure) as exc_info:
            compute_deltas(changes, tmp_path / "old", tmp_path / "new", tmp_path / "out", provider)

        assert exc_info.value.new_file == tmp_path / "new" / "b.txt"
        assert not (tmp_path / "out" / "c.txt.upd").exists()

    def test_parallel_workers_write_every_delta(self, tmp_path: Path, fake_provider):
        names = [f"f{i}.txt" for i in range(8)]
        write_tree(tmp_path / "old", {name: "old" for name in names})
        write_tree(tmp_path / "new", {name: f"new {name}" for name in names})
        changes = ChangeSet(updated=names)

        outputs = compute_deltas(
            changes, tmp_path / "old", tmp_path / "new", tmp_path / "out", fake_provider, workers=4
        )

        assert outputs == [tmp_path / "out" / f"{name}.upd" for name in names]
        assert all(path.is_file() for path in outputs)

    def test_parallel_failure_propagates(self, tmp_path: Path):
        names = [f"f{i}.txt" for i in range(4)]
        write_tree(tmp_path / "old", {name: "old" for name in names})
        write_tree(tmp_path / "new", {name: "new" for name in names})
        provider = FakeDeltaProvider(fail_on={"f2.txt"})

        with pytest.raises(DeltaComputationFailure):
            compute_deltas(
                ChangeSet(updated=names),
                tmp_path / "old",
                tmp_path / "new",
                tmp_path / "out",
                provider,
                workers=3,
            )

    def test_delta_output_path(self, tmp_path: Path):
        assert delta_output_path(tmp_path, "dir/a.txt") == tmp_path / "dir" / "a.txt.upd"


class TestXdelta3Provider:
    """Tests for the xdelta3 command provider."""

    def test_command_with_base_file(self, tmp_path: Path):
        write_tree(tmp_path, {"old.txt": "o", "new.txt": "n"})
        provider = Xdelta3Provider()

        command = provider.build_command(
            tmp_path / "old.txt", tmp_path / "new.txt", tmp_path / "out.upd"
        )

        assert command == [
            "xdelta3", "-f", "-e",
            "-s", str(tmp_path / "old.txt"),
            str(tmp_path / "new.txt"), str(tmp_path / "out.upd"),
        ]

    def test_command_without_base_file(self, tmp_path: Path):
        write_tree(tmp_path, {"new.txt": "n"})
        provider = Xdelta3Provider("xdelta3")

        command = provider.build_command(
            tmp_path / "missing.txt", tmp_path / "new.txt", tmp_path / "out.upd"
        )

        assert "-s" not in command
        assert command[-2:] == [str(tmp_path / "new.txt"), str(tmp_path / "out.upd")]

    def test_missing_executable_is_a_failure(self, tmp_path: Path):
        write_tree(tmp_path, {"old.txt": "o", "new.txt": "n"})
        provider = Xdelta3Provider("treepatch-no-such-xdelta")

        with pytest.raises(DeltaComputationFailure) as exc_info:
            provider.compute_delta(tmp_path / "old.txt", tmp_path / "new.txt", tmp_path / "o.upd")

        message = str(exc_info.value)
        assert "treepatch-no-such-xdelta" in message
        assert str(tmp_path / "new.txt") in message
        assert str(tmp_path / "o.upd") in message

    def test_get_delta_provider_uses_configured_command(self):
        provider = get_delta_provider(make_config(delta_command="/opt/bin/xdelta3"))

        assert isinstance(provider, Xdelta3Provider)
        assert provider.command == "/opt/bin/xdelta3"

    @requires_xdelta3
    def test_writes_vcdiff_delta(self, tmp_path: Path):
        write_tree(tmp_path, {"old.txt": "hello", "new.txt": "hello world"})
        output = tmp_path / "a.txt.upd"

        Xdelta3Provider().compute_delta(tmp_path / "old.txt", tmp_path / "new.txt", output)

        # RFC 3284 magic: 'V' 'C' 'D' with the high bit set, then version 0
        assert output.read_bytes()[:4] == b"\xd6\xc3\xc4\x00"

    @requires_xdelta3
    def test_non_zero_exit_is_a_failure(self, tmp_path: Path):
        output = tmp_path / "x.upd"

        with pytest.raises(DeltaComputationFailure) as exc_info:
            Xdelta3Provider().compute_delta(
                tmp_path / "missing-old", tmp_path / "missing-new", output
            )

        assert exc_info.value.command[0] == "xdelta3"
