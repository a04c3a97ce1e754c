"""Tests for CSV and preview-file intake."""

import json
from pathlib import Path

import pytest

from gridclaim.infrastructure.intake import read_preview_json, read_usernames_csv


class TestReadUsernamesCsv:
    def test_skips_header_and_takes_first_column(self, tmp_path: Path) -> None:
        path = tmp_path / "users.csv"
        path.write_text("username,email\nAlice,a@example.com\nbob,b@example.com\n")
        assert read_usernames_csv(path) == ["Alice", "bob"]

    def test_ignores_blank_rows(self, tmp_path: Path) -> None:
        path = tmp_path / "users.csv"
        path.write_text("name\nalice\n\n  \ncarol\n")
        assert read_usernames_csv(path) == ["alice", "carol"]

    def test_strips_byte_order_mark(self, tmp_path: Path) -> None:
        path = tmp_path / "users.csv"
        path.write_bytes("\ufeffname\nalice\n".encode())
        assert read_usernames_csv(path) == ["alice"]

    def test_header_only(self, tmp_path: Path) -> None:
        path = tmp_path / "users.csv"
        path.write_text("name\n")
        assert read_usernames_csv(path) == []


class TestReadPreviewJson:
    def test_reads_ready_list(self, tmp_path: Path) -> None:
        path = tmp_path / "preview.json"
        path.write_text(json.dumps({"ok": True, "data": {"ready_to_insert": ["a", "b"]}}))
        assert read_preview_json(path) == ["a", "b"]

    def test_rejects_other_payloads(self, tmp_path: Path) -> None:
        path = tmp_path / "preview.json"
        path.write_text(json.dumps({"ok": True, "data": {"allocated": 1}}))
        with pytest.raises(ValueError, match="preview result"):
            read_preview_json(path)
