"""Tests for sandbox path resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from mcpbox.runtime.errors import SandboxError, SandboxEscapeError, ToolInputError
from mcpbox.runtime.sandbox.resolver import (
    SANDBOX_ROOT_ENV,
    ensure_sandbox_root,
    get_sandbox_root,
    resolve_sandbox,
)


class TestResolveSandbox:
    def test_plain_relative_path(self, sandbox: Path) -> None:
        assert resolve_sandbox(sandbox, "note.txt") == sandbox / "note.txt"

    def test_nested_path_is_canonicalized(self, sandbox: Path) -> None:
        assert resolve_sandbox(sandbox, "a/./b/../c.txt") == sandbox / "a" / "c.txt"

    def test_accepts_string_root(self, sandbox: Path) -> None:
        assert resolve_sandbox(str(sandbox), "x") == sandbox / "x"

    @pytest.mark.parametrize("relative", [".", "", "a/..", "./"])
    def test_root_itself_is_valid(self, sandbox: Path, relative: str) -> None:
        assert resolve_sandbox(sandbox, relative) == sandbox

    @pytest.mark.parametrize(
        "relative",
        [
            "../../etc/passwd",
            "..",
            "./../outside.txt",
            "./././../outside.txt",
            "a/../../outside.txt",
            "a/./b/../../../outside.txt",
            "/etc/passwd",
        ],
    )
    def test_escapes_are_rejected(self, sandbox: Path, relative: str) -> None:
        with pytest.raises(SandboxEscapeError) as exc_info:
            resolve_sandbox(sandbox, relative)
        assert exc_info.value.path == relative
        assert "escapes sandbox" in str(exc_info.value)

    def test_sibling_with_shared_prefix_is_rejected(self, tmp_path: Path) -> None:
        root = (tmp_path / "a" / "b").resolve()
        root.mkdir(parents=True)
        (tmp_path / "a" / "bc").mkdir()
        with pytest.raises(SandboxEscapeError):
            resolve_sandbox(root, "../bc/file.txt")

    def test_symlink_out_of_root_is_rejected(self, sandbox: Path, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, sandbox / "link")
        with pytest.raises(SandboxEscapeError):
            resolve_sandbox(sandbox, "link/secret.txt")

    def test_embedded_null_byte_is_input_error(self, sandbox: Path) -> None:
        with pytest.raises(ToolInputError, match="null byte"):
            resolve_sandbox(sandbox, "a\x00b")

    def test_escape_is_a_sandbox_error(self) -> None:
        assert issubclass(SandboxEscapeError, SandboxError)


class TestSandboxRoot:
    def test_env_override(self, tmp_path: Path) -> None:
        root = get_sandbox_root({SANDBOX_ROOT_ENV: str(tmp_path / "box")})
        assert root == (tmp_path / "box").resolve()

    def test_blank_env_falls_back_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert get_sandbox_root({SANDBOX_ROOT_ENV: "   "}) == (tmp_path / "sandbox").resolve()

    def test_reads_process_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(SANDBOX_ROOT_ENV, str(tmp_path))
        assert get_sandbox_root() == tmp_path.resolve()

    def test_ensure_creates_missing_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "deep" / "er" / "sandbox"
        root = ensure_sandbox_root(target)
        assert root.is_dir()
        assert root == target.resolve()

    def test_ensure_is_idempotent(self, sandbox: Path) -> None:
        assert ensure_sandbox_root(sandbox) == sandbox
        assert ensure_sandbox_root(sandbox) == sandbox
