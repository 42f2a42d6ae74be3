"""Tests for sync orchestration."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from envsync.exceptions import MissingRequiredSecretsError, SyncError
from envsync.models import EnvData, SecretRequirement, SyncTarget, TargetSettings
from envsync.plugins.base import PluginDefinition
from envsync.sync import find_missing_secrets, sync_target, sync_targets


class StatusRecorder:
    """Status callback recording (step, data) pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any] | None]] = []
        self.messages: list[str] = []

    def __call__(self, step: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.events.append((step, data))
        self.messages.append(message)

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.events]


@pytest.fixture
def vault() -> PluginDefinition:
    """Plugin providing the db secret."""
    return PluginDefinition(name="vault", secret_providers={"db": "Database password"})


def make_target(
    plugins: list,
    *,
    repos: list[str] | None = None,
    secrets: dict[str, SecretRequirement] | None = None,
    settings: dict[str, list[Any]] | None = None,
    name: str | None = "main",
) -> SyncTarget:
    return SyncTarget(
        name=name,
        repos=repos if repos is not None else ["org/one", "org/two"],
        plugins=plugins,
        secrets=secrets or {},
        config=TargetSettings(settings=settings or {}),
    )


class TestSyncTarget:
    """Tests for sync_target()."""

    async def test_event_sequence(self) -> None:
        """Events follow the global pass, then each repo in order."""
        first = PluginDefinition(name="first", run=MagicMock(), run_on_repo=MagicMock())
        second = PluginDefinition(name="second", run_on_repo=AsyncMock())
        recorder = StatusRecorder()

        await sync_target(make_target([first, second]), EnvData(), recorder)

        assert recorder.events == [
            ("global-start", {"count": 2}),
            ("run", {"plugin": "first"}),
            ("run-complete", {"plugin": "first"}),
            ("global-done", None),
            ("repos-start", {"count": 2}),
            ("run-on-repo", {"repo": "org/one", "plugin": "first"}),
            ("run-on-repo-complete", {"repo": "org/one", "plugin": "first"}),
            ("run-on-repo", {"repo": "org/one", "plugin": "second"}),
            ("run-on-repo-complete", {"repo": "org/one", "plugin": "second"}),
            ("run-on-repo", {"repo": "org/two", "plugin": "first"}),
            ("run-on-repo-complete", {"repo": "org/two", "plugin": "first"}),
            ("run-on-repo", {"repo": "org/two", "plugin": "second"}),
            ("run-on-repo-complete", {"repo": "org/two", "plugin": "second"}),
            ("repos-done", None),
        ]
        assert recorder.messages[1] == "Running first globally..."
        assert recorder.messages[5] == "Running first on org/one..."

    async def test_hooks_receive_their_options(self) -> None:
        """Hooks get the target, env data, callback, their settings and the repo."""
        run = MagicMock()
        run_on_repo = AsyncMock()
        plugin = PluginDefinition(name="deploy", run=run, run_on_repo=run_on_repo)
        target = make_target(
            [plugin],
            repos=["org/one"],
            settings={"deploy": [{"env": "prod"}], "other": ["x"]},
        )
        env_data = EnvData(secrets={"db": "s3cret"})
        recorder = StatusRecorder()

        await sync_target(target, env_data, recorder)

        run.assert_called_once_with(
            config=target,
            env_data=env_data,
            status_callback=recorder,
            settings=[{"env": "prod"}],
        )
        run_on_repo.assert_awaited_once_with(
            config=target,
            env_data=env_data,
            status_callback=recorder,
            settings=[{"env": "prod"}],
            repo="org/one",
        )

    async def test_plugin_without_settings_gets_none(self) -> None:
        """A plugin with no settings entry gets settings=None."""
        run = MagicMock()

        await sync_target(make_target([PluginDefinition(name="bare", run=run)]))

        assert run.call_args.kwargs["settings"] is None

    async def test_missing_required_secret_runs_nothing(self, vault: PluginDefinition) -> None:
        """Missing required secrets fail before any hook or event."""
        run = MagicMock()
        spy = PluginDefinition(name="spy", run=run, run_on_repo=run)
        target = make_target(
            [vault, spy],
            secrets={
                "db": SecretRequirement(required=True, provider=vault),
                "api": SecretRequirement(required=True, provider=vault),
                "cdn": SecretRequirement(required=False, provider=vault),
            },
        )
        recorder = StatusRecorder()

        with pytest.raises(MissingRequiredSecretsError) as exc_info:
            await sync_target(target, EnvData(secrets={"api": ""}), recorder)

        assert exc_info.value.names == ["db", "api"]
        assert str(exc_info.value) == "Missing required secrets: db, api"
        run.assert_not_called()
        assert recorder.events == []

    async def test_missing_optional_secret_is_fine(self, vault: PluginDefinition) -> None:
        """Optional secrets may be absent."""
        run = MagicMock()
        target = make_target(
            [vault, PluginDefinition(name="app", run=run)],
            secrets={"db": SecretRequirement(required=False, provider=vault)},
        )

        await sync_target(target, EnvData())

        run.assert_called_once()

    async def test_failing_hook_aborts_the_target(self) -> None:
        """A hook error propagates unchanged and nothing after it runs."""
        error = RuntimeError("publish failed")
        broken = PluginDefinition(name="broken", run_on_repo=AsyncMock(side_effect=error))
        after = PluginDefinition(name="after", run_on_repo=MagicMock())
        recorder = StatusRecorder()

        with pytest.raises(RuntimeError) as exc_info:
            await sync_target(make_target([broken, after]), EnvData(), recorder)

        assert exc_info.value is error
        after.run_on_repo.assert_not_called()
        assert recorder.steps[-1] == "run-on-repo"
        assert "repos-done" not in recorder.steps

    async def test_async_status_callback_is_awaited(self) -> None:
        """Each status event completes before the next step starts."""
        order: list[str] = []

        async def status(step: str, message: str, data: dict[str, Any] | None = None) -> None:
            await asyncio.sleep(0)
            order.append(step)

        plugin = PluginDefinition(name="p", run=lambda **_: order.append("hook"))

        await sync_target(make_target([plugin], repos=[]), EnvData(), status)

        assert order == [
            "global-start",
            "run",
            "hook",
            "run-complete",
            "global-done",
            "repos-start",
            "repos-done",
        ]

    async def test_placeholders_are_skipped(self) -> None:
        """Missing optional plugins are ignored during a sync."""
        run = MagicMock()

        await sync_target(make_target([False, PluginDefinition(name="p", run=run)]))

        run.assert_called_once()

    async def test_works_without_env_data_or_callback(self) -> None:
        """Both env data and the status callback are optional."""
        run_on_repo = MagicMock()

        await sync_target(make_target([PluginDefinition(name="p", run_on_repo=run_on_repo)]))

        assert run_on_repo.call_count == 2
        assert run_on_repo.call_args.kwargs["env_data"] == EnvData()


class TestFindMissingSecrets:
    """Tests for find_missing_secrets()."""

    def test_lists_required_secrets_without_value(self, vault: PluginDefinition) -> None:
        """Only required secrets with no (or an empty) value are listed."""
        target = make_target(
            [vault],
            secrets={
                "db": SecretRequirement(required=True, provider=vault),
                "api": SecretRequirement(required=True, provider=vault),
                "cdn": SecretRequirement(required=False, provider=vault),
            },
        )

        missing = find_missing_secrets(target, EnvData(secrets={"db": "x", "api": ""}))

        assert missing == ["api"]


class TestSyncTargets:
    """Tests for sync_targets()."""

    async def test_syncs_every_target(self) -> None:
        """All targets run, and events carry the target name."""
        run = AsyncMock()
        plugin = PluginDefinition(name="p", run=run)
        recorder = StatusRecorder()

        await sync_targets(
            [make_target([plugin], name="a"), make_target([plugin], name="b")],
            EnvData(),
            recorder,
        )

        assert run.await_count == 2
        targets = {data["target"] for _, data in recorder.events if data}
        assert targets == {"a", "b"}
        assert ("repos-done", {"target": "a"}) in recorder.events

    async def test_targets_run_concurrently(self) -> None:
        """Targets interleave instead of running one after another."""
        started: list[str] = []
        both_started = asyncio.Event()

        async def run(*, config: SyncTarget, **_: Any) -> None:
            started.append(config.display_name)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)

        plugin = PluginDefinition(name="p", run=run)

        await sync_targets([make_target([plugin], name="a"), make_target([plugin], name="b")])

        assert sorted(started) == ["a", "b"]

    async def test_failure_does_not_cancel_siblings(self) -> None:
        """A failing target is reported while the others still complete."""
        error = RuntimeError("boom")

        async def fail(**_: Any) -> None:
            raise error

        async def slow(**_: Any) -> None:
            await asyncio.sleep(0.01)

        ok_hook = AsyncMock(side_effect=slow)
        failing = make_target([PluginDefinition(name="bad", run=fail)], name="failing")
        healthy = make_target([PluginDefinition(name="good", run=ok_hook)], name="healthy")

        with pytest.raises(SyncError) as exc_info:
            await sync_targets([failing, healthy])

        assert exc_info.value.failures == [("failing", error)]
        assert exc_info.value.__cause__ is error
        ok_hook.assert_awaited_once()

    async def test_unnamed_targets(self, vault: PluginDefinition) -> None:
        """Unnamed targets are reported as unnamed."""
        target = make_target(
            [vault],
            name=None,
            secrets={"db": SecretRequirement(required=True, provider=vault)},
        )

        with pytest.raises(SyncError) as exc_info:
            await sync_targets([target])

        name, error = exc_info.value.failures[0]
        assert name == "unnamed"
        assert isinstance(error, MissingRequiredSecretsError)
