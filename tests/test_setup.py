"""Tests for turning a config into resolved targets."""

from unittest.mock import MagicMock

import pytest

from envsync.exceptions import InvalidInputError, MissingPluginsError
from envsync.models import BaseConfig, EnvSyncConfig, TargetConfig
from envsync.plugins.base import PluginDefinition
from envsync.setup import init_env_sync


@pytest.fixture
def plugins() -> dict[str, PluginDefinition]:
    return {
        "env": PluginDefinition(name="env"),
        "vault": PluginDefinition(
            name="vault",
            secret_providers={"db": "Database password", "api": "API key"},
        ),
        "deploy": PluginDefinition(name="deploy", dependencies=["vault"], secrets=["db"]),
        "notify": PluginDefinition(name="notify", dependencies=["vault"], secrets=["db?", "api?"]),
    }


def make_loader(plugins: dict[str, PluginDefinition]) -> MagicMock:
    return MagicMock(side_effect=plugins.get)


async def test_targets_are_resolved(plugins: dict[str, PluginDefinition]) -> None:
    """Each target gets its merged plugins, secrets and config."""
    config = EnvSyncConfig(
        plugins=["env"],
        settings={"deploy": {"env": "prod"}},
        target=[
            TargetConfig(name="backend", repos=["org/api"], config=BaseConfig(plugins=["deploy"])),
            TargetConfig(name="web", repos=["org/web"], config=BaseConfig(plugins=["notify"])),
        ],
    )

    setup = await init_env_sync(config, make_loader(plugins))

    backend, web = setup.targets
    assert backend.name == "backend"
    assert backend.repos == ["org/api"]
    assert [p.name for p in backend.plugins] == ["env", "vault", "deploy"]
    assert backend.config.settings == {"deploy": [{"env": "prod"}]}
    assert backend.secrets["db"].required is True
    assert [p.name for p in web.plugins] == ["env", "vault", "notify"]
    assert web.secrets["db"].required is False
    assert [p.name for p in setup.base.plugins] == ["env"]
    assert setup.base.secrets == {}


async def test_later_target_wins_secret_union(plugins: dict[str, PluginDefinition]) -> None:
    """Secrets needed by several targets take the later target's requirement."""
    config = EnvSyncConfig(
        target=[
            TargetConfig(name="a", config=BaseConfig(plugins=["deploy"])),
            TargetConfig(name="b", config=BaseConfig(plugins=["notify"])),
        ],
    )

    setup = await init_env_sync(config, make_loader(plugins))

    assert set(setup.secrets) == {"db", "api"}
    assert setup.secrets["db"].required is False
    assert setup.secrets["db"].provider is plugins["vault"]


async def test_no_targets(plugins: dict[str, PluginDefinition]) -> None:
    setup = await init_env_sync(EnvSyncConfig(plugins=["env"]), make_loader(plugins))

    assert setup.targets == []
    assert setup.secrets == {}
    assert [p.name for p in setup.base.plugins] == ["env"]


async def test_target_resolution_errors_propagate(plugins: dict[str, PluginDefinition]) -> None:
    config = EnvSyncConfig(target=TargetConfig(config=BaseConfig(plugins=["deploy", "nope"])))

    with pytest.raises(MissingPluginsError, match='Plugin missing: "nope"'):
        await init_env_sync(config, make_loader(plugins))


async def test_invalid_config() -> None:
    with pytest.raises(InvalidInputError):
        await init_env_sync({"plugins": []}, make_loader({}))  # type: ignore[arg-type]
