"""Configuration schema using Pydantic.

Persisted to ~/.pybridge/config.json; every field can also be set from the
environment, e.g. PYBRIDGE_WORKER__PORT=8080.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pybridge.runtime_image import RUNTIME_IMAGE_URL


class WorkerConfig(BaseModel):
    """Control channel settings."""
    host: str = "localhost"
    port: int = 0  # Host node port; 0 means not configured
    endpoint_name: str = "python:python:holium.os"  # Process id the host routes this worker under
    outbound_capacity: int = Field(default=100, ge=1)  # Results waiting to be written to the channel


class NativeExecutorConfig(BaseModel):
    """Embedded interpreter backend."""
    home: str = ""  # Host node home; packages live under <home>/vfs
    installer_command: list[str] = Field(default_factory=lambda: ["pip3", "install"])


class SandboxExecutorConfig(BaseModel):
    """WASI virtual machine backend."""
    runtime_image: str = ""  # Path to python.wasm; empty means the packaged asset
    runtime_url: str = RUNTIME_IMAGE_URL


class BridgeConfig(BaseSettings):
    """Root configuration for pybridge."""
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    native: NativeExecutorConfig = Field(default_factory=NativeExecutorConfig)
    sandbox: SandboxExecutorConfig = Field(default_factory=SandboxExecutorConfig)

    @property
    def url(self) -> str:
        """Control endpoint: ws://<host>:<port>/<endpoint_name>."""
        return f"ws://{self.worker.host}:{self.worker.port}/{self.worker.endpoint_name}"

    model_config = SettingsConfigDict(
        env_prefix="PYBRIDGE_",
        env_nested_delimiter="__",
    )
