import io
import json
import tarfile

import pytest
import requests

from snackpack.errors import ResolutionError
from snackpack.registry import NpmRegistry

REGISTRY = "https://registry.test"


def _tarball(files, top="package"):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class StubResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class StubSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.responses:
            return StubResponse(404)
        return self.responses[url]


@pytest.fixture
def packument():
    return {
        "name": "color",
        "dist-tags": {"latest": "3.1.3", "next": "4.0.0-rc.1"},
        "versions": {
            "3.0.0": {"dist": {"tarball": f"{REGISTRY}/color/-/color-3.0.0.tgz"}},
            "3.1.3": {"dist": {"tarball": f"{REGISTRY}/color/-/color-3.1.3.tgz"}},
            "4.0.0-rc.1": {"dist": {"tarball": f"{REGISTRY}/color/-/color-4.0.0-rc.1.tgz"}},
        },
    }


@pytest.fixture
def session(packument):
    tarball = _tarball(
        {
            "package.json": json.dumps({"name": "color", "version": "3.1.3", "main": "index.js"}),
            "index.js": "module.exports = require('color-convert');",
        }
    )
    return StubSession(
        {
            f"{REGISTRY}/color": StubResponse(payload=packument),
            f"{REGISTRY}/color/-/color-3.1.3.tgz": StubResponse(content=tarball),
        }
    )


@pytest.fixture
def npm(settings, session):
    return NpmRegistry(settings.model_copy(update={"registry_url": REGISTRY}), session=session)


@pytest.mark.parametrize(
    "constraint, expected",
    [
        ("latest", "3.1.3"),
        ("next", "4.0.0-rc.1"),
        ("3.0.0", "3.0.0"),
        ("^3.0.0", "3.1.3"),
        ("~3.0.0", "3.0.0"),
        ("*", "3.1.3"),
    ],
)
def test_resolve_version(npm, constraint, expected):
    assert npm.resolve_version("color", constraint) == expected


def test_packument_fetched_once(npm, session):
    npm.resolve_version("color", "latest")
    npm.resolve_version("color", "^3.0.0")
    assert session.requested == [f"{REGISTRY}/color"]


def test_unsatisfiable_range(npm):
    with pytest.raises(ResolutionError, match="No version of 'color' satisfies '\\^9.0.0'"):
        npm.resolve_version("color", "^9.0.0")


def test_unknown_package(npm):
    with pytest.raises(ResolutionError, match="not found"):
        npm.resolve_version("does-not-exist", "latest")


def test_scoped_package_url_is_encoded(settings):
    session = StubSession({})
    npm = NpmRegistry(settings.model_copy(update={"registry_url": REGISTRY}), session=session)
    with pytest.raises(ResolutionError):
        npm.resolve_version("@react-navigation/stack", "latest")
    assert session.requested == [f"{REGISTRY}/@react-navigation%2Fstack"]


def test_install_unpacks_tarball(npm, settings):
    root = npm.install("color", "3.1.3")

    assert root == settings.cache_dir / "color" / "3.1.3" / "package"
    assert (root / "index.js").read_text() == "module.exports = require('color-convert');"
    manifest = npm.read_manifest("color", "3.1.3", root)
    assert manifest.main == "index.js"


def test_install_is_idempotent(npm, session):
    first = npm.install("color", "3.1.3")
    downloads = len(session.requested)
    second = npm.install("color", "3.1.3")

    assert first == second
    assert len(session.requested) == downloads


def test_install_unknown_version(npm):
    with pytest.raises(ResolutionError, match="Version '1.0.0' of 'color' not found"):
        npm.install("color", "1.0.0")


def test_install_download_failure(npm):
    # 3.0.0 has no tarball response registered
    with pytest.raises(ResolutionError, match="Failed to download 'color'"):
        npm.install("color", "3.0.0")


def test_tarball_with_custom_top_level_directory(settings, packument):
    tarball = _tarball({"package.json": json.dumps({"name": "color"})}, top="color")
    session = StubSession(
        {
            f"{REGISTRY}/color": StubResponse(payload=packument),
            f"{REGISTRY}/color/-/color-3.0.0.tgz": StubResponse(content=tarball),
        }
    )
    npm = NpmRegistry(settings.model_copy(update={"registry_url": REGISTRY}), session=session)
    assert npm.install("color", "3.0.0").name == "color"


def test_unsafe_tarball_members_are_skipped(settings, packument):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in (("package/package.json", '{"name": "color"}'), ("../escaped.js", "boom")):
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    session = StubSession(
        {
            f"{REGISTRY}/color": StubResponse(payload=packument),
            f"{REGISTRY}/color/-/color-3.0.0.tgz": StubResponse(content=buffer.getvalue()),
        }
    )
    npm = NpmRegistry(settings.model_copy(update={"registry_url": REGISTRY}), session=session)

    root = npm.install("color", "3.0.0")

    assert (root / "package.json").is_file()
    assert not (settings.cache_dir / "color" / "escaped.js").exists()
    assert not any(settings.cache_dir.rglob("escaped.js"))
