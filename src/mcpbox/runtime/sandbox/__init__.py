"""Sandbox subsystem — path confinement and the primitives tools run on."""

from mcpbox.runtime.sandbox.resolver import (
    SANDBOX_ROOT_ENV,
    ensure_sandbox_root,
    get_sandbox_root,
    resolve_sandbox,
)

__all__ = [
    "SANDBOX_ROOT_ENV",
    "ensure_sandbox_root",
    "get_sandbox_root",
    "resolve_sandbox",
]
