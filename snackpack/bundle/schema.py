"""Output schema - contract between the bundler and whatever stores its artifacts."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Manifest(BaseModel):
    """Metadata written next to the platform bundles."""

    format_version: str = Field(default="1.0.0")
    tool_version: str
    package: str
    version: str
    created_at: str
    platforms: List[str] = Field(default_factory=list)


class PlatformArtifact(BaseModel):
    """Per-platform entry in result.json (the code lives in its own file)."""

    file: Optional[str] = Field(default=None, description="Bundle path, absent when the platform has no entry")
    size: int
    externals: List[str] = Field(default_factory=list)


class ArtifactIndex(BaseModel):
    manifest: Manifest
    files: Dict[str, PlatformArtifact]
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
