"""Native-embedded executor: call a function from a package script in this process."""

from __future__ import annotations

import asyncio
import os
import sys
import threading
import types
import uuid
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from loguru import logger

from pybridge.executors.base import ScriptExecutor
from pybridge.executors.installer import (
    DEFAULT_INSTALLER_COMMAND,
    InstallerRunner,
    install_requirements,
    run_installer,
)
from pybridge.executors.paths import package_dir, script_path
from pybridge.protocol.types import Request, RunScript
from pybridge.utils.exceptions import ExecutionError


class NativeExecutor(ScriptExecutor):
    """
    Run `RunScript` requests in the worker's own interpreter.

    Every call installs the script's requirements, then compiles the script as a
    brand-new module and calls the requested function with string arguments.

    Calls serialize on a process-wide interpreter lock: the working-directory
    change, module compilation and the function call form one critical section,
    so concurrent requests for this executor run one at a time. The section runs
    on a dedicated single-thread pool: queued calls wait there, so a slow script
    blocks neither the event loop nor the loop's default executor.

    The working directory is process-wide, so `home` is made absolute up front.
    """

    _interpreter_lock = threading.Lock()
    _interpreter_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pybridge-interpreter")

    def __init__(
        self,
        home: str | Path,
        installer_command: Sequence[str] = DEFAULT_INSTALLER_COMMAND,
        runner: InstallerRunner = run_installer,
    ):
        home = str(home or "").strip()
        self.home = str(Path(home).expanduser().resolve()) if home else ""
        self.installer_command = tuple(installer_command)
        self._runner = runner

    @property
    def executor_id(self) -> str:
        return "native"

    async def run(self, request: Request, blob: bytes | None) -> bytes:
        if not isinstance(request, RunScript):
            raise ExecutionError(self.executor_id, f"unsupported request: {type(request).__name__}")
        if not self.home:
            raise ExecutionError(self.executor_id, "home directory is not configured")

        script_file = script_path(self.home, request.package_id, request.script)
        logger.debug(
            "RunScript package={} script={} func={} args={}",
            request.package_id,
            request.script,
            request.func,
            list(request.args),
        )
        if request.requirements.strip():
            requirements_file = script_path(self.home, request.package_id, request.requirements)
            await install_requirements(requirements_file, self.installer_command, self._runner)
        source = await asyncio.to_thread(script_file.read_text, encoding="utf-8")

        result = await asyncio.get_running_loop().run_in_executor(
            self._interpreter_pool,
            self._call,
            source,
            package_dir(self.home, request.package_id),
            script_file,
            request.func,
            request.args,
        )
        return result.encode("utf-8")

    @classmethod
    def _call(
        cls,
        source: str,
        cwd: Path,
        filename: Path,
        func: str,
        args: Sequence[str],
    ) -> str:
        with cls._interpreter_lock:
            previous_cwd = os.getcwd()
            os.chdir(cwd)
            module_name = f"pybridge_script_{uuid.uuid4().hex}"
            module = types.ModuleType(module_name)
            module.__file__ = str(filename)
            # dataclasses and friends look their defining module up in sys.modules
            sys.modules[module_name] = module
            try:
                code = compile(source, str(filename), "exec")
                exec(code, module.__dict__)
                target = getattr(module, func)
                return str(target(*(str(arg) for arg in args)))
            finally:
                sys.modules.pop(module_name, None)
                os.chdir(previous_cwd)
