import asyncio

import pytest

from snackpack.errors import PlatformEntryMissing
from snackpack.graph import GraphBuilder
from snackpack.models import Platform
from snackpack.policy import ExternalizationPolicy
from snackpack.resolver import PackageResolver


async def _build(registry, name, platform, subpath=None):
    resolver = PackageResolver(registry)
    root = await resolver.resolve_root(name, "latest")
    builder = GraphBuilder(resolver, ExternalizationPolicy(root.manifest))
    return await builder.build(root, platform, subpath)


@pytest.fixture
def cyclic(registry):
    registry.publish(
        "cyclic",
        "1.0.0",
        {
            "index.js": "import { a } from './a';\nimport React from 'react';",
            "a.js": "import { b } from './b';\nexport const a = 1;",
            "b.js": "import { a } from './a';\nexport const b = a;",
        },
        main="index.js",
    )
    return registry


def test_graph_indices(cyclic):
    graph = asyncio.run(_build(cyclic, "cyclic", Platform.ios))

    paths = {module.relative_path: module for module in graph.modules.values()}
    assert sorted(paths) == ["a.js", "b.js", "index.js"]
    assert graph.entry_id == paths["index.js"].id
    assert graph.externals == ["react"]
    assert list(graph.packages) == [("cyclic", "1.0.0")]
    assert graph.modules_by_package[("cyclic", "1.0.0")] == sorted(graph.modules)


def test_dependency_maps_and_edges(cyclic):
    graph = asyncio.run(_build(cyclic, "cyclic", Platform.ios))

    index = graph.get_module_by_path(graph.modules[graph.entry_id].path)
    a = next(m for m in graph.modules.values() if m.relative_path == "a.js")
    b = next(m for m in graph.modules.values() if m.relative_path == "b.js")

    assert index.dependency_map == {"./a": a.id, "react": "react"}
    assert graph.edges_from_module[index.id] == [a.id]
    assert graph.edges_from_module[a.id] == [b.id]
    assert graph.edges_from_module[b.id] == [a.id]


def test_missing_entry_raises(registry):
    registry.publish("native-only", "1.0.0", {"index.ios.js": ""})

    with pytest.raises(PlatformEntryMissing):
        asyncio.run(_build(registry, "native-only", Platform.web))


def test_filesystem_work_runs_in_worker_threads(cyclic, monkeypatch):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    asyncio.run(_build(cyclic, "cyclic", Platform.ios))

    assert offloaded.count("read_text") == 3
    assert offloaded.count("resolve_file") == 3
    assert "resolve" in offloaded
    assert "install" in offloaded
    assert "read_manifest" in offloaded
