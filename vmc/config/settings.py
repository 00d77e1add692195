from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

DEFAULT_VMC_PORT = 39539


class Endpoint(BaseModel):
    ip: str = "127.0.0.1"
    port: int = DEFAULT_VMC_PORT

    @field_validator("port")
    @classmethod
    def _port_range(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("port must be in [1, 65535]")
        return v

    def as_tuple(self) -> tuple[str, int]:
        return (self.ip, self.port)


class BindEndpoint(Endpoint):
    # Port 0 lets the OS pick an ephemeral port.
    port: int = 0

    @field_validator("port")
    @classmethod
    def _port_range(cls, v: int) -> int:
        if not (0 <= v <= 65535):
            raise ValueError("port must be in [0, 65535]")
        return v


class ListenEndpoint(BindEndpoint):
    port: int = DEFAULT_VMC_PORT


class PerformerSettings(BaseModel):
    target: Endpoint = Field(default_factory=Endpoint)
    bind: BindEndpoint = Field(default_factory=BindEndpoint)


class MarionetteSettings(BaseModel):
    bind: ListenEndpoint = Field(default_factory=ListenEndpoint)
    queue_maxsize: int = Field(1024, ge=1)


class CodecSettings(BaseModel):
    max_bundle_depth: int = Field(16, ge=1)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_logs: bool = Field(True, alias="json")


class RecorderSettings(BaseModel):
    output: Path = Path("out.vmc.jsonl")


class DemoSettings(BaseModel):
    fps: int = Field(60, ge=1, le=240)


class Settings(BaseModel):
    performer: PerformerSettings = Field(default_factory=PerformerSettings)
    marionette: MarionetteSettings = Field(default_factory=MarionetteSettings)
    codec: CodecSettings = Field(default_factory=CodecSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    recorder: RecorderSettings = Field(default_factory=RecorderSettings)
    demo: DemoSettings = Field(default_factory=DemoSettings)
