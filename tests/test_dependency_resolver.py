import asyncio

import pytest

from modder.models import (
    DependencyRef,
    ModLoader,
    OutcomeKind,
    ProjectRef,
    Provider,
    ResolutionRequest,
)
from modder.services.dependency_resolver import DedupSet, DependencyResolver

from tests.conftest import FakeClient, make_descriptor

MR = Provider.MODRINTH


@pytest.fixture
def request_1214(mods_dir):
    return ResolutionRequest(game_version="1.21.4", loader=ModLoader.FABRIC, destination=mods_dir)


def _resolver(**versions):
    client = FakeClient(MR, versions=versions)
    return DependencyResolver({MR: client}), client


def _kinds(entries):
    resolved = [e for e in entries if e.resolved]
    others = {kind: [e for e in entries if e.outcome and e.outcome.kind == kind] for kind in OutcomeKind}
    return resolved, others


@pytest.mark.asyncio
async def test_cycle_yields_one_duplicate(request_1214):
    resolver, _ = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["b"])],
        b=[make_descriptor(MR, "b", dependencies=["a"])],
    )

    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    resolved, others = _kinds(entries)

    assert len(entries) == 3
    assert sorted(e.ref.project_id for e in resolved) == ["a", "b"]
    skipped = others[OutcomeKind.SKIPPED_DUPLICATE]
    assert len(skipped) == 1
    assert skipped[0].ref == ProjectRef(MR, "a")


@pytest.mark.asyncio
async def test_diamond_resolves_shared_dependency_once(request_1214):
    resolver, client = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["b", "c"])],
        b=[make_descriptor(MR, "b", dependencies=["d"])],
        c=[make_descriptor(MR, "c", dependencies=["d"])],
        d=[make_descriptor(MR, "d")],
    )

    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    resolved, others = _kinds(entries)

    keys = [e.ref.key for e in resolved]
    assert len(keys) == len(set(keys)) == 4
    assert len(others[OutcomeKind.SKIPPED_DUPLICATE]) == 1
    assert client.resolve_calls.count("d") == 1


@pytest.mark.asyncio
async def test_root_flag(request_1214):
    resolver, _ = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["b"])],
        b=[make_descriptor(MR, "b")],
    )
    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    assert {e.ref.project_id: e.is_root for e in entries} == {"a": True, "b": False}


@pytest.mark.asyncio
async def test_optional_dependencies_need_opt_in(mods_dir):
    versions = dict(
        a=[
            make_descriptor(
                MR,
                "a",
                dependencies=[
                    DependencyRef(MR, "opt", "optional"),
                    DependencyRef(MR, "emb", "embedded"),
                    DependencyRef(MR, "bad", "incompatible"),
                ],
            )
        ],
        opt=[make_descriptor(MR, "opt")],
        emb=[make_descriptor(MR, "emb")],
        bad=[make_descriptor(MR, "bad")],
    )
    resolver, _ = _resolver(**versions)
    roots = [ProjectRef(MR, "a")]

    plain = await resolver.collect(roots, ResolutionRequest("1.21.4", destination=mods_dir))
    assert [e.ref.project_id for e in plain] == ["a"]

    request = ResolutionRequest("1.21.4", destination=mods_dir, include_optional=True)
    with_optional = await resolver.collect(roots, request)
    assert sorted(e.ref.project_id for e in with_optional) == ["a", "opt"]


@pytest.mark.asyncio
async def test_missing_and_failing_dependencies_are_pruned(request_1214, transport_error):
    resolver, _ = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["broken", "missing", "old"])],
        broken=transport_error,
        old=[make_descriptor(MR, "old", game_versions=["1.20.1"], dependencies=["x"])],
        x=[make_descriptor(MR, "x")],
    )

    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    resolved, others = _kinds(entries)

    assert [e.ref.project_id for e in resolved] == ["a"]
    assert [e.ref.project_id for e in others[OutcomeKind.FAILED]] == ["broken"]
    assert sorted(e.ref.project_id for e in others[OutcomeKind.NOT_FOUND]) == [
        "missing",
        "old",
    ]


@pytest.mark.asyncio
async def test_shared_roots_are_deduplicated(request_1214):
    resolver, _ = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["lib"])],
        b=[make_descriptor(MR, "b", dependencies=["lib"])],
        lib=[make_descriptor(MR, "lib")],
    )

    entries = await resolver.collect([ProjectRef(MR, "a"), ProjectRef(MR, "b")], request_1214)
    resolved, others = _kinds(entries)

    assert sorted(e.ref.project_id for e in resolved) == ["a", "b", "lib"]
    assert len(others[OutcomeKind.SKIPPED_DUPLICATE]) == 1


@pytest.mark.asyncio
async def test_expand_streams_entries(request_1214):
    resolver, _ = _resolver(a=[make_descriptor(MR, "a")])
    seen = []
    async for entry in resolver.expand([ProjectRef(MR, "a")], request_1214):
        seen.append(entry)
    assert len(seen) == 1 and seen[0].resolved


@pytest.mark.asyncio
async def test_dedup_set_claims_once_under_contention():
    dedup = DedupSet()
    results = await asyncio.gather(*(dedup.claim(("modrinth", "x")) for _ in range(50)))
    assert results.count(True) == 1
    assert ("modrinth", "x") in dedup
    assert len(dedup) == 1


@pytest.mark.asyncio
async def test_root_listing_itself_among_two_dependencies(request_1214):
    resolver, client = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["b", "a"])],
        b=[make_descriptor(MR, "b")],
    )

    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    resolved, others = _kinds(entries)

    assert sorted(e.ref.project_id for e in resolved) == ["a", "b"]
    assert [e.ref.project_id for e in others[OutcomeKind.SKIPPED_DUPLICATE]] == ["a"]
    assert len(entries) == 3
    assert client.resolve_calls.count("a") == 1


@pytest.mark.asyncio
async def test_cycle_through_second_dependency(request_1214):
    resolver, client = _resolver(
        a=[make_descriptor(MR, "a", dependencies=["b", "c"])],
        b=[make_descriptor(MR, "b")],
        c=[make_descriptor(MR, "c", dependencies=["a"])],
    )

    entries = await resolver.collect([ProjectRef(MR, "a")], request_1214)
    resolved, others = _kinds(entries)

    assert sorted(e.ref.project_id for e in resolved) == ["a", "b", "c"]
    skipped = others[OutcomeKind.SKIPPED_DUPLICATE]
    assert [e.ref.project_id for e in skipped] == ["a"]
    assert not skipped[0].is_root
    assert client.resolve_calls.count("a") == 1
