import pytest

from modder.models import Artifact, IdentityKind, ProjectRef, Provider
from modder.services import provenance
from modder.services.fingerprint import fingerprint
from modder.services.identity import IdentityResolver

from tests.conftest import FakeClient, make_descriptor, make_jar, sha512_of


@pytest.mark.asyncio
async def test_content_hash_match_short_circuits(mods_dir):
    jar = make_jar(mods_dir / "sodium.jar")
    modrinth = FakeClient(
        Provider.MODRINTH,
        by_hash={sha512_of(jar): make_descriptor(Provider.MODRINTH, "AANobbMI")},
    )
    curseforge = FakeClient(Provider.CURSEFORGE)
    resolver = IdentityResolver({Provider.MODRINTH: modrinth, Provider.CURSEFORGE: curseforge})

    identity = await resolver.resolve(Artifact(jar))

    assert identity.kind == IdentityKind.CONTENT_ADDRESSED
    assert identity.provider == Provider.MODRINTH
    assert identity.value == sha512_of(jar)
    assert identity.project_ref == ProjectRef(Provider.MODRINTH, "AANobbMI")
    assert curseforge.lookup_calls == 0


@pytest.mark.asyncio
async def test_fingerprint_after_hash_error(mods_dir, transport_error):
    jar = make_jar(mods_dir / "jei.jar")
    modrinth = FakeClient(Provider.MODRINTH, lookup_error=transport_error)
    curseforge = FakeClient(
        Provider.CURSEFORGE,
        by_fingerprint={
            fingerprint(jar.read_bytes()): make_descriptor(Provider.CURSEFORGE, "238222")
        },
    )
    resolver = IdentityResolver({Provider.MODRINTH: modrinth, Provider.CURSEFORGE: curseforge})

    identity = await resolver.resolve(Artifact(jar))

    assert identity.kind == IdentityKind.FINGERPRINTED
    assert identity.value == str(fingerprint(jar.read_bytes()))
    assert identity.project_ref == ProjectRef(Provider.CURSEFORGE, "238222")
    assert modrinth.lookup_calls == 1


@pytest.mark.asyncio
async def test_provenance_tag_without_curseforge_client(mods_dir):
    jar = make_jar(mods_dir / "custom.jar")
    provenance.stamp(jar, Provider.GITHUB, "owner/custom")
    resolver = IdentityResolver({Provider.MODRINTH: FakeClient(Provider.MODRINTH)})

    identity = await resolver.resolve(Artifact(jar))

    assert identity.kind == IdentityKind.PROVENANCE_TAGGED
    assert identity.provider == Provider.GITHUB
    assert identity.value == "owner/custom"
    assert identity.project_ref == ProjectRef(Provider.GITHUB, "owner/custom")


@pytest.mark.asyncio
async def test_unknown_when_nothing_matches(mods_dir, transport_error):
    jar = make_jar(mods_dir / "mystery.jar")
    resolver = IdentityResolver(
        {
            Provider.MODRINTH: FakeClient(Provider.MODRINTH),
            Provider.CURSEFORGE: FakeClient(Provider.CURSEFORGE, lookup_error=transport_error),
        }
    )
    artifact = Artifact(jar)

    identity = await resolver.resolve(artifact)

    assert identity.kind == IdentityKind.UNKNOWN
    assert not identity.is_known
    assert artifact.identity == identity


@pytest.mark.asyncio
async def test_result_is_cached_on_artifact(mods_dir):
    jar = make_jar(mods_dir / "sodium.jar")
    modrinth = FakeClient(
        Provider.MODRINTH,
        by_hash={sha512_of(jar): make_descriptor(Provider.MODRINTH, "AANobbMI")},
    )
    resolver = IdentityResolver({Provider.MODRINTH: modrinth})
    artifact = Artifact(jar)

    first = await resolver.resolve(artifact)
    second = await resolver.resolve(artifact)

    assert first == second
    assert modrinth.lookup_calls == 1


@pytest.mark.asyncio
async def test_cache_dropped_when_bytes_change(mods_dir):
    jar = make_jar(mods_dir / "sodium.jar")
    modrinth = FakeClient(
        Provider.MODRINTH,
        by_hash={sha512_of(jar): make_descriptor(Provider.MODRINTH, "AANobbMI")},
    )
    resolver = IdentityResolver({Provider.MODRINTH: modrinth})
    artifact = Artifact(jar)
    assert (await resolver.resolve(artifact)).is_known

    make_jar(jar, {"other.txt": b"different contents, different size"})

    assert artifact.identity.kind == IdentityKind.UNRESOLVED
    assert (await resolver.resolve(artifact)).kind == IdentityKind.UNKNOWN


@pytest.mark.asyncio
async def test_locate_uses_only_the_given_provider(mods_dir):
    jar = make_jar(mods_dir / "jei.jar")
    modrinth = FakeClient(Provider.MODRINTH)
    curseforge = FakeClient(
        Provider.CURSEFORGE,
        by_fingerprint={
            fingerprint(jar.read_bytes()): make_descriptor(Provider.CURSEFORGE, "238222")
        },
    )
    resolver = IdentityResolver({Provider.MODRINTH: modrinth, Provider.CURSEFORGE: curseforge})
    artifact = Artifact(jar)

    assert await resolver.locate(artifact, Provider.MODRINTH) is None
    located = await resolver.locate(artifact, Provider.CURSEFORGE)
    assert located.kind == IdentityKind.FINGERPRINTED
    assert await resolver.locate(artifact, Provider.GITHUB) is None
    assert curseforge.lookup_calls == 1
