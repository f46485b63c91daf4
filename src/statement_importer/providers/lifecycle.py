import datetime as dt
from enum import StrEnum
from typing import Annotated, Literal, Protocol

from pydantic import BaseModel, Field


class ModelCapability(StrEnum):
    CATEGORIZATION = "categorization"
    INSIGHTS = "insights"
    CHAT = "chat"
    OCR_ENHANCEMENT = "ocr_enhancement"
    MULTILINGUAL = "multilingual"


class ModelConfig(BaseModel):
    """Catalogue entry for a downloadable on-device model."""
    id: str
    display_name: str
    description: str = ""
    size_bytes: int
    min_ram_bytes: int = 0
    capabilities: set[ModelCapability] = Field(default_factory=set)
    download_url: str
    checksum_sha256: str
    version: str
    min_app_version: str = "0.0.0"

    @property
    def formatted_size(self) -> str:
        if self.size_bytes >= 1_000_000_000:
            return f"{self.size_bytes / 1_000_000_000:.1f} GB"
        if self.size_bytes >= 1_000_000:
            return f"{self.size_bytes // 1_000_000} MB"
        if self.size_bytes >= 1_000:
            return f"{self.size_bytes // 1_000} KB"
        return f"{self.size_bytes} B"


class ModelStatus(StrEnum):
    READY = "ready"
    CORRUPTED = "corrupted"
    UPDATE_AVAILABLE = "update_available"


class InstalledModel(BaseModel):
    config: ModelConfig
    file_path: str
    installed_at: dt.datetime = Field(default_factory=dt.datetime.now)
    status: ModelStatus = ModelStatus.READY


class DownloadError(StrEnum):
    NETWORK_ERROR = "network_error"
    INSUFFICIENT_STORAGE = "insufficient_storage"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    UNSUPPORTED_DEVICE = "unsupported_device"
    UNKNOWN = "unknown"


class Idle(BaseModel):
    state: Literal["idle"] = "idle"


class Preparing(BaseModel):
    state: Literal["preparing"] = "preparing"
    model_id: str


class Downloading(BaseModel):
    state: Literal["downloading"] = "downloading"
    model_id: str
    bytes_downloaded: int
    total_bytes: int
    speed_bytes_per_second: int = 0

    @property
    def progress(self) -> float:
        return self.bytes_downloaded / self.total_bytes if self.total_bytes > 0 else 0.0

    @property
    def progress_percent(self) -> int:
        return int(self.progress * 100)

    @property
    def remaining_seconds(self) -> int:
        if self.speed_bytes_per_second <= 0:
            return 0
        return (self.total_bytes - self.bytes_downloaded) // self.speed_bytes_per_second


class Verifying(BaseModel):
    state: Literal["verifying"] = "verifying"
    model_id: str


class Completed(BaseModel):
    state: Literal["completed"] = "completed"
    model_id: str
    installed_model: InstalledModel


class Failed(BaseModel):
    state: Literal["failed"] = "failed"
    model_id: str
    error: DownloadError


class Cancelled(BaseModel):
    state: Literal["cancelled"] = "cancelled"


DownloadProgress = Annotated[
    Idle | Preparing | Downloading | Verifying | Completed | Failed | Cancelled,
    Field(discriminator="state"),
]


class ModelRepository(Protocol):
    def current_model(self) -> InstalledModel | None:
        """The installed model the user selected, if any."""
        ...


class InferenceResult(BaseModel):
    text: str
    input_tokens: int
    output_tokens: int
    duration_ms: int = 0

    @property
    def tokens_per_second(self) -> float:
        if self.duration_ms <= 0:
            return 0.0
        return self.output_tokens / (self.duration_ms / 1000)


class InferenceEngine(Protocol):
    def load_model(self, model_path: str) -> bool: ...

    def is_model_loaded(self) -> bool: ...

    def unload_model(self) -> None: ...

    def complete(self, prompt: str, max_tokens: int = 256, temperature: float = 0.1) -> InferenceResult: ...
