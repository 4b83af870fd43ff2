"""Tests for the behavior and settings models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from httpecho.models import EchoBehaviors, EchoSettings


class TestEchoBehaviors:
    def test_defaults(self) -> None:
        behaviors = EchoBehaviors()
        assert not behaviors.skip_cache_lookup
        assert not behaviors.deny_network_calls
        assert not behaviors.skip_recording_responses
        assert not behaviors.denies_everything()

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            EchoBehaviors().deny_network_calls = True

    @pytest.mark.parametrize(
        "flags, expected",
        [
            ({"skip_cache_lookup": True}, False),
            ({"deny_network_calls": True}, False),
            ({"skip_cache_lookup": True, "deny_network_calls": True}, True),
        ],
    )
    def test_denies_everything(self, flags: dict, expected: bool) -> None:
        assert EchoBehaviors(**flags).denies_everything() is expected


class TestEchoSettings:
    def test_aliases(self) -> None:
        settings = EchoSettings.model_validate({"lookupPath": "a", "update_path": "b"})
        assert settings.lookup_path == Path("a")
        assert settings.update_path == Path("b")

    def test_cache_name_extension_is_implied(self) -> None:
        assert EchoSettings(cache_name="Api.vcr").cache_file_name == "Api.vcr"
        assert EchoSettings(cache_name="Api").cache_file(Path("/rec")) == Path("/rec/Api.vcr")

    @pytest.mark.parametrize("name", ["", ".vcr", "a/b", "a\\b"])
    def test_invalid_cache_name(self, name: str) -> None:
        with pytest.raises(ValidationError):
            EchoSettings(cache_name=name)
