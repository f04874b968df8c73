import hashlib
import json
import zipfile
from datetime import datetime, timezone
from pathlib import Path

from snackpack.bundle.schema import ArtifactIndex, Manifest, PlatformArtifact
from snackpack.models import BundleResult


def write_result(result: BundleResult, output_dir: Path, tool_version: str = "1.0.0", archive: bool = False) -> Path:
    """Write platform bundles and result.json; optionally zip them. Returns the index or archive path."""
    output_dir.mkdir(parents=True, exist_ok=True)

    manifest = Manifest(
        tool_version=tool_version,
        package=result.name,
        version=result.version,
        created_at=datetime.now(timezone.utc).isoformat(),
        platforms=[platform.value for platform in result.files],
    )

    written = []
    files = {}
    for platform, bundle in result.files.items():
        relative = f"{platform.value}/bundle.js"
        if bundle.code is None:
            files[platform.value] = PlatformArtifact(size=bundle.size, externals=bundle.externals)
            continue
        files[platform.value] = PlatformArtifact(file=relative, size=bundle.size, externals=bundle.externals)
        bundle_path = output_dir / relative
        bundle_path.parent.mkdir(parents=True, exist_ok=True)
        bundle_path.write_text(bundle.code, encoding="utf-8")
        written.append(relative)

    index = ArtifactIndex(manifest=manifest, files=files, peerDependencies=result.peer_dependencies)
    index_path = output_dir / "result.json"
    with open(index_path, "w", encoding="utf-8") as f:
        json.dump(index.model_dump(mode="json", by_alias=True), f, indent=2)

    if not archive:
        return index_path

    digest = hashlib.sha256(f"{result.name}@{result.version}".encode()).hexdigest()[:12]
    zip_path = output_dir / f"snackpack_bundle_{digest}.zip"

    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zipf:
        zipf.write(index_path, "result.json")
        for relative in written:
            zipf.write(output_dir / relative, relative)

    return zip_path
