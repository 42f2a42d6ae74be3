"""Tests for error messages."""

from envsync.exceptions import (
    DuplicateProviderError,
    EnvSyncError,
    InvalidInputError,
    MissingPluginsError,
    MissingProviderError,
    PluginAddError,
    PluginLoadError,
    SyncError,
)


def test_details_are_included() -> None:
    error = EnvSyncError("Broken", details={"key": "value"})

    assert str(error) == "Broken | Details: {'key': 'value'}"


def test_invalid_input_is_a_type_error() -> None:
    assert isinstance(InvalidInputError("bad"), TypeError)


def test_plugin_errors_name_the_plugin() -> None:
    assert str(PluginLoadError("vault")) == '[vault] Failed to load plugin "vault"'
    assert PluginAddError("b").plugin_name == "b"


def test_missing_plugins_lists_every_name() -> None:
    assert str(MissingPluginsError(["x"])) == 'Plugin missing: "x"'
    assert str(MissingPluginsError(["x", "y"])) == 'Plugins missing: "x", "y"'


def test_duplicate_providers() -> None:
    error = DuplicateProviderError({"db": ["one", "two"], "api": ["a", "b"]})

    assert str(error) == (
        'Duplicate secret providers for: "db" (provided by "one", "two"), '
        '"api" (provided by "a", "b")'
    )


def test_missing_providers() -> None:
    error = MissingProviderError(["db", "api"])

    assert str(error) == 'Missing secret providers for required secrets: "db", "api"'


def test_sync_error_lists_failures() -> None:
    error = SyncError([("a", RuntimeError("boom")), ("b", ValueError("bad"))])

    assert str(error) == "2 targets failed to sync: a: boom; b: bad"
