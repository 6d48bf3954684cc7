"""Request/response models for the Workers assets API and step results."""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class AssetMetadata(BaseModel):
    """Manifest entry as sent to the upload session endpoint."""
    hash: str
    size: int


class UploadSessionRequest(BaseModel):
    """Request body for opening an assets upload session."""
    manifest: Dict[str, AssetMetadata]


class ApiMessage(BaseModel):
    """Error or informational message in the API envelope."""
    code: Optional[int] = None
    message: str = ""


class UploadSessionResult(BaseModel):
    jwt: Optional[str] = None
    buckets: List[List[str]] = Field(default_factory=list)


class UploadSessionResponse(BaseModel):
    """Envelope returned by the upload session endpoint."""
    result: Optional[UploadSessionResult] = None
    success: bool = False
    errors: List[ApiMessage] = Field(default_factory=list)
    messages: List[Any] = Field(default_factory=list)


class AssetUploadResult(BaseModel):
    jwt: Optional[str] = None


class AssetUploadResponse(BaseModel):
    """Envelope returned by the bucket upload endpoint."""
    result: Optional[AssetUploadResult] = None
    success: bool = False
    errors: List[ApiMessage] = Field(default_factory=list)
    messages: List[Any] = Field(default_factory=list)


class ScriptBinding(BaseModel):
    name: str
    type: str


class ScriptAssets(BaseModel):
    jwt: str


class ScriptMetadata(BaseModel):
    """The `metadata` part of a script upload."""
    main_module: str
    compatibility_date: str
    assets: ScriptAssets
    bindings: List[ScriptBinding] = Field(default_factory=list)


@dataclass(frozen=True)
class UploadSession:
    """Upload token plus the buckets of fingerprints still missing remotely."""

    jwt: str
    buckets: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class BucketUploadResult:
    """Outcome of a single bucket request."""

    index: int
    status_code: int
    jwt: str | None


@dataclass(frozen=True)
class UploadCompleted:
    """All buckets were accepted."""

    completion_token: str
    outcome: Literal["completed"] = "completed"


@dataclass(frozen=True)
class UploadFailed:
    """At least one bucket failed or no completion token came back."""

    reason: str
    outcome: Literal["failed"] = "failed"


UploadOutcome = UploadCompleted | UploadFailed
