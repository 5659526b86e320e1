"""Sandbox path resolution.

Every file tool funnels its ``path`` argument through :func:`resolve_sandbox`.
Both the root and the joined path are canonicalized (``..``, ``.``, duplicate
separators and symlinks) *before* the containment check, and containment is
decided on path components rather than string prefixes, so ``/a/b`` never
contains ``/a/bc``.
"""

from __future__ import annotations

import os
from pathlib import Path

from mcpbox.runtime.errors import SandboxEscapeError, ToolInputError

SANDBOX_ROOT_ENV = "MCPBOX_SANDBOX_ROOT"
DEFAULT_SANDBOX_DIR = "sandbox"


def get_sandbox_root(env: dict[str, str] | None = None) -> Path:
    """Return the configured sandbox root as an absolute path.

    Reads ``MCPBOX_SANDBOX_ROOT``; blank values fall back to ``./sandbox``
    relative to the current working directory.
    """
    source = os.environ if env is None else env
    override = source.get(SANDBOX_ROOT_ENV, "").strip()
    base = Path(override) if override else Path.cwd() / DEFAULT_SANDBOX_DIR
    return base.resolve()


def ensure_sandbox_root(root: Path | str | None = None) -> Path:
    """Create the sandbox root (and parents) if missing and return it."""
    path = Path(root).resolve() if root is not None else get_sandbox_root()
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_sandbox(root: Path | str, relative_path: str) -> Path:
    """Resolve *relative_path* against *root*, rejecting escapes.

    Returns the canonical absolute path.  The root itself is a valid result
    only when *relative_path* canonicalizes to exactly the root.

    Raises
    ------
    SandboxEscapeError
        If the canonical path is neither the root nor inside it.
    ToolInputError
        If *relative_path* cannot be represented as a filesystem path
        (an embedded NUL byte, for instance).
    """
    if "\x00" in relative_path:
        raise ToolInputError(f"Invalid path {relative_path!r}: embedded null byte")
    abs_root = Path(root).resolve()
    try:
        candidate = (abs_root / relative_path).resolve()
    except ValueError as exc:
        raise ToolInputError(f"Invalid path {relative_path!r}: {exc}") from exc
    if candidate != abs_root and abs_root not in candidate.parents:
        raise SandboxEscapeError(relative_path)
    return candidate
