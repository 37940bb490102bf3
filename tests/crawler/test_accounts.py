"""Tests for account roster resolution."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from x_intel_digest.config import XSettings
from x_intel_digest.crawler.accounts import (
    load_dev_accounts,
    normalize_accounts,
    resolve_accounts,
)


@pytest.fixture
def kit_dir(tmp_path: Path) -> Path:
    """Create an empty crawler directory."""
    path = tmp_path / "x-kit"
    path.mkdir()
    return path


def make_settings(kit_dir: Path, accounts: list[str]) -> XSettings:
    with patch.dict("os.environ", {}, clear=True):
        return XSettings(X_KIT_DIR=str(kit_dir), X_ACCOUNTS=accounts)


class TestNormalizeAccounts:
    """Tests for normalize_accounts."""

    def test_strips_at_and_whitespace(self) -> None:
        assert normalize_accounts([" @alice ", "bob"]) == ["alice", "bob"]

    def test_drops_blanks_and_duplicates_keeping_order(self) -> None:
        assert normalize_accounts(["bob", "", "alice", "@Bob", "  "]) == ["bob", "alice"]

    def test_empty(self) -> None:
        assert normalize_accounts([]) == []


class TestLoadDevAccounts:
    """Tests for load_dev_accounts."""

    def test_missing_file(self, kit_dir: Path) -> None:
        assert load_dev_accounts(kit_dir / "dev-accounts.json") == []

    def test_reads_usernames(self, kit_dir: Path) -> None:
        path = kit_dir / "dev-accounts.json"
        path.write_text(
            json.dumps([{"username": "alice"}, {"username": "bob", "twitter_url": "x"}, {}])
        )
        assert load_dev_accounts(path) == ["alice", "bob"]

    def test_malformed_file(self, kit_dir: Path) -> None:
        path = kit_dir / "dev-accounts.json"
        path.write_text("{not json")
        assert load_dev_accounts(path) == []

    def test_non_list_file(self, kit_dir: Path) -> None:
        path = kit_dir / "dev-accounts.json"
        path.write_text(json.dumps({"username": "alice"}))
        assert load_dev_accounts(path) == []


class TestResolveAccounts:
    """Tests for resolve_accounts."""

    def test_uses_configured_accounts(self, kit_dir: Path) -> None:
        settings = make_settings(kit_dir, ["alice", "@bob"])
        assert resolve_accounts(settings) == ["alice", "bob"]

    def test_dev_accounts_take_precedence(self, kit_dir: Path) -> None:
        (kit_dir / "dev-accounts.json").write_text(json.dumps([{"username": "carol"}]))
        settings = make_settings(kit_dir, ["alice"])
        assert resolve_accounts(settings) == ["carol"]

    def test_empty_dev_accounts_fall_back(self, kit_dir: Path) -> None:
        (kit_dir / "dev-accounts.json").write_text("[]")
        settings = make_settings(kit_dir, ["alice"])
        assert resolve_accounts(settings) == ["alice"]

    def test_empty_roster(self, kit_dir: Path) -> None:
        settings = make_settings(kit_dir, [])
        assert resolve_accounts(settings) == []
