import dataclasses

import pytest

from modder.exceptions import ParseError
from modder.models import (
    Artifact,
    DependencyRef,
    Identity,
    IdentityKind,
    JobOutcome,
    ModLoader,
    OutcomeKind,
    Provider,
    VersionDescriptor,
    scan_directory,
    summarize,
)
from modder.models.api import LookupStrategy

from tests.conftest import make_jar


def test_provider_order_and_strategies():
    assert list(Provider) == [Provider.MODRINTH, Provider.CURSEFORGE, Provider.GITHUB]
    assert Provider.MODRINTH.lookup == LookupStrategy.CONTENT_HASH
    assert Provider.CURSEFORGE.lookup == LookupStrategy.FINGERPRINT
    assert Provider.GITHUB.lookup == LookupStrategy.REPO_REFERENCE
    assert Provider.parse(" GitHub ") == Provider.GITHUB
    with pytest.raises(ValueError):
        Provider.parse("bukkit")


def test_loader_parsing():
    assert ModLoader.parse("NeoForge") == ModLoader.NEOFORGE
    assert ModLoader.from_name("Minecraft") is None
    assert ModLoader.FABRIC.curseforge_id == 4


def test_dependency_equality_ignores_relation():
    required = DependencyRef(Provider.MODRINTH, "P7dR8mSH", "required")
    optional = DependencyRef(Provider.MODRINTH, "P7dR8mSH", "optional")
    assert required == optional
    assert len({required, optional}) == 1
    assert required != DependencyRef(Provider.CURSEFORGE, "P7dR8mSH")


def test_identity_is_immutable():
    identity = Identity.provenance_tagged(Provider.GITHUB, "owner/repo")
    with pytest.raises(dataclasses.FrozenInstanceError):
        identity.value = "other/repo"


def test_artifact_enablement_from_suffix(tmp_path):
    active = Artifact(tmp_path / "sodium.jar")
    inactive = Artifact(tmp_path / "sodium.jar.disabled")

    assert active.enabled and not inactive.enabled
    assert active.name == inactive.name == "sodium.jar"
    assert inactive.active_path == tmp_path / "sodium.jar"
    assert active.inactive_path == tmp_path / "sodium.jar.disabled"


def test_scan_directory(tmp_path):
    make_jar(tmp_path / "b.jar")
    make_jar(tmp_path / "a.jar.disabled")
    (tmp_path / "readme.txt").write_text("x")
    (tmp_path / "folder.jar").mkdir()

    assert [a.filename for a in scan_directory(tmp_path)] == ["a.jar.disabled", "b.jar"]
    assert [a.filename for a in scan_directory(tmp_path, include_disabled=False)] == ["b.jar"]


def test_from_modrinth():
    descriptor = VersionDescriptor.from_modrinth(
        {
            "id": "abc123",
            "project_id": "AANobbMI",
            "version_number": "0.6.0",
            "game_versions": ["1.21.4"],
            "loaders": ["fabric", "quilt", "minecraft"],
            "files": [
                {"url": "https://cdn/a.jar", "filename": "a.jar", "hashes": {"sha1": "x"}},
                {
                    "url": "https://cdn/b.jar",
                    "filename": "b.jar",
                    "hashes": {"sha512": "y"},
                    "primary": True,
                },
            ],
            "dependencies": [
                {"project_id": "P7dR8mSH", "dependency_type": "required"},
                {"version_id": "only-version", "dependency_type": "required"},
            ],
        }
    )

    assert descriptor.ref.project_id == "AANobbMI"
    assert descriptor.loaders == [ModLoader.FABRIC, ModLoader.QUILT]
    assert descriptor.primary_file.filename == "b.jar"
    assert descriptor.dependencies == [DependencyRef(Provider.MODRINTH, "P7dR8mSH")]


def test_from_modrinth_malformed():
    with pytest.raises(ParseError):
        VersionDescriptor.from_modrinth({"id": "abc"})


def test_from_curseforge_splits_loaders():
    descriptor = VersionDescriptor.from_curseforge(
        {
            "id": 5000,
            "modId": 238222,
            "displayName": "JEI 19.0",
            "fileName": "jei-1.21.4-fabric-19.0.jar",
            "downloadUrl": None,
            "gameVersions": ["1.21.4", "Fabric", "Client"],
            "hashes": [{"algo": 1, "value": "abc"}, {"algo": 2, "value": "def"}],
            "dependencies": [{"modId": 306612, "relationType": 3}],
        }
    )

    assert descriptor.project_id == "238222"
    assert descriptor.version_id == "5000"
    assert descriptor.loaders == [ModLoader.FABRIC]
    assert descriptor.game_versions == ["1.21.4", "Client"]
    assert descriptor.primary_file.url == ""
    assert descriptor.primary_file.hashes == {"sha1": "abc", "md5": "def"}
    assert descriptor.dependencies[0].relation == "required"


def test_summarize_counts_every_kind():
    counts = summarize(
        [
            JobOutcome.downloaded("a", "/tmp/a.jar"),
            JobOutcome.not_found("b", "no version"),
            JobOutcome.skipped_duplicate("c"),
        ]
    )
    assert counts == {
        OutcomeKind.DOWNLOADED: 1,
        OutcomeKind.NOT_FOUND: 1,
        OutcomeKind.FAILED: 0,
        OutcomeKind.SKIPPED_DUPLICATE: 1,
    }


def test_unresolved_identity_default(tmp_path):
    artifact = Artifact(make_jar(tmp_path / "a.jar"))
    assert artifact.identity.kind == IdentityKind.UNRESOLVED
