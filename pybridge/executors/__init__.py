"""Script executors: native embedded interpreter and sandboxed WASI VM."""

from pybridge.executors.base import ScriptExecutor
from pybridge.executors.native import NativeExecutor
from pybridge.executors.sandboxed import SandboxedExecutor

__all__ = ["NativeExecutor", "SandboxedExecutor", "ScriptExecutor"]
