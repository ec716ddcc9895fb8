from pathlib import Path

import pytest

from modder.exceptions import ConfigParseError, ConfigValidationError
from modder.models import ModderConfig, ModLoader, Provider, ResolutionRequest
from modder.utils import get_minecraft_dir, load_config, load_config_file, split_repo


@pytest.fixture(autouse=True)
def _no_token_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("CURSEFORGE_API_KEY", raising=False)


def test_defaults():
    config = ModderConfig.from_dict({})
    assert config.loader == ModLoader.FABRIC
    assert config.source == Provider.MODRINTH
    assert config.fallback is True
    assert config.github_token is None
    assert config.curseforge_api_key is None


def test_modder_section():
    config = ModderConfig.from_dict(
        {
            "modder": {
                "minecraft_version": "1.21.4",
                "loader": "Quilt",
                "source": "github",
                "max_concurrent": 8,
                "mods_dir": "mods",
            }
        }
    )
    assert config.minecraft_version == "1.21.4"
    assert config.loader == ModLoader.QUILT
    assert config.source == Provider.GITHUB
    assert config.max_concurrent == 8
    assert config.mods_dir == Path("mods")


def test_tokens_from_environment(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
    monkeypatch.setenv("CURSEFORGE_API_KEY", "cf_env")

    config = ModderConfig.from_dict({"github_token": "ghp_file"})

    assert config.github_token == "ghp_file"
    assert config.curseforge_api_key == "cf_env"


@pytest.mark.parametrize(
    "data",
    [{"max_concurrent": 0}, {"loader": "bukkit"}, {"source": "planetminecraft"}, {"retry_delay": "soon"}],
)
def test_invalid_values(data):
    with pytest.raises(ConfigValidationError):
        ModderConfig.from_dict(data)


def test_request_overrides():
    config = ModderConfig(minecraft_version="1.20.1", source=Provider.CURSEFORGE)
    request = config.request(game_version="1.21.4", loader=None, delete_previous=True)

    assert request.game_version == "1.21.4"
    assert request.preferred == Provider.CURSEFORGE
    assert request.loader == ModLoader.FABRIC
    assert request.delete_previous is True


def test_request_requires_game_version():
    with pytest.raises(ConfigValidationError):
        ModderConfig().request()
    with pytest.raises(ConfigValidationError):
        ResolutionRequest(game_version="")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filename, text",
    [
        ("modder.toml", 'minecraft_version = "1.21.4"\nloader = "neoforge"\n'),
        ("modder.json", '{"minecraft_version": "1.21.4", "loader": "neoforge"}'),
        ("modder.yaml", "minecraft_version: '1.21.4'\nloader: neoforge\n"),
    ],
)
async def test_load_config_formats(tmp_path, filename, text):
    path = tmp_path / filename
    path.write_text(text, encoding="utf-8")

    config = await load_config(path)

    assert config.minecraft_version == "1.21.4"
    assert config.loader == ModLoader.NEOFORGE


@pytest.mark.asyncio
async def test_load_config_errors(tmp_path):
    bad_toml = tmp_path / "bad.toml"
    bad_toml.write_text("minecraft_version = [", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        await load_config_file(bad_toml)

    ini = tmp_path / "modder.ini"
    ini.write_text("[modder]", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        await load_config_file(ini)

    with pytest.raises(ConfigParseError):
        await load_config_file(tmp_path / "missing.toml")


@pytest.mark.asyncio
async def test_missing_default_config_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = await load_config()
    assert config == ModderConfig.from_dict({})


def test_split_repo():
    assert split_repo("owner/repo") == ("owner", "repo")
    assert split_repo("/owner/repo/") == ("owner", "repo")
    for bad in ("owner", "owner/", "a/b/c"):
        with pytest.raises(ValueError):
            split_repo(bad)


def test_minecraft_dir_on_linux(monkeypatch, tmp_path):
    monkeypatch.setattr("modder.utils.sys.platform", "linux")
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    assert get_minecraft_dir() == tmp_path / ".minecraft"


def test_log_file_key():
    assert ModderConfig.from_dict({}).log_file is None
    assert ModderConfig.from_dict({"log_file": "logs/modder.log"}).log_file == Path("logs/modder.log")
