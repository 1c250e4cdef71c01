"""Sandboxed-VM executor: pipe source text into a fresh WASI CPython instance."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from loguru import logger
from wasmtime import Config, Engine, ExitTrap, Linker, Module, Store, Trap, WasiConfig, WasmtimeError

from pybridge.executors.base import ScriptExecutor
from pybridge.protocol.types import Request, Run
from pybridge.runtime_image import load_runtime_image
from pybridge.utils.exceptions import ExecutionError

GUEST_ARGV = ["python"]


def _new_engine() -> Engine:
    config = Config()
    config.epoch_interruption = True
    return Engine(config)


class SandboxedExecutor(ScriptExecutor):
    """
    Run legacy `Run` requests inside an isolated WebAssembly VM.

    Each call builds its own Engine, Store, Module and Linker. The guest gets
    three standard streams and nothing else: no preopened directories, no
    environment and no sockets. stdin carries the source text; the guest's
    stdout is the result, or its stderr when it exits non-zero or traps.

    `image` may be wasm bytes or WAT text; when omitted the runtime image is
    loaded from `image_path` (or the default asset path).
    """

    def __init__(self, image: bytes | str | None = None, image_path: str | Path | None = None):
        self._image = image
        self._image_path = image_path

    @property
    def executor_id(self) -> str:
        return "sandboxed"

    def _load_image(self) -> bytes | str:
        if self._image is not None:
            return self._image
        return load_runtime_image(self._image_path)

    async def run(self, request: Request, blob: bytes | None) -> bytes:
        if not isinstance(request, Run):
            raise ExecutionError(self.executor_id, f"unsupported request: {type(request).__name__}")
        image = self._load_image()
        engine = _new_engine()
        try:
            return await asyncio.to_thread(self._run_guest, engine, image, blob or b"")
        except asyncio.CancelledError:
            # make the guest trap at its next epoch check so the thread finishes
            engine.increment_epoch()
            raise

    def _run_guest(self, engine: Engine, image: bytes | str, source: bytes) -> bytes:
        with tempfile.TemporaryDirectory(prefix="pybridge-vm-") as tmp:
            stdin_path = Path(tmp) / "stdin"
            stdout_path = Path(tmp) / "stdout"
            stderr_path = Path(tmp) / "stderr"
            stdin_path.write_bytes(source)

            wasi = WasiConfig()
            wasi.argv = GUEST_ARGV
            wasi.stdin_file = str(stdin_path)
            wasi.stdout_file = str(stdout_path)
            wasi.stderr_file = str(stderr_path)

            store = Store(engine)
            store.set_wasi(wasi)
            store.set_epoch_deadline(1)
            try:
                module = Module(engine, image)
                linker = Linker(engine)
                linker.define_wasi()
                instance = linker.instantiate(store, module)
                start = instance.exports(store)["_start"]
            except (WasmtimeError, Trap, KeyError) as e:
                raise ExecutionError(self.executor_id, f"failed to instantiate runtime: {e}") from e

            failure: str | None = None
            try:
                start(store)
            except ExitTrap as e:
                if e.code != 0:
                    failure = f"guest exited with status {e.code}"
            except (Trap, WasmtimeError) as e:
                failure = str(e)

            stdout = stdout_path.read_bytes() if stdout_path.exists() else b""
            stderr = stderr_path.read_bytes() if stderr_path.exists() else b""

        if failure is None:
            return stdout
        logger.debug("sandboxed guest failed: {}", failure)
        return stderr or failure.encode("utf-8")
