"""
Tests for the export/import service.
"""
import json

import pytest

from jwt_validator.storage.export_import import (
    ExportError,
    ExportImportService,
)


@pytest.fixture
def store(tmp_path):
    return ExportImportService(export_dir=str(tmp_path / "exports"))


@pytest.fixture
def populated_store(store):
    store.add_generated_token("user-1", {"role": "admin"}, "a.b.c", description="first")
    store.add_generated_token("user-2", {}, "d.e.f")
    store.add_claims_template("Admin", "Administrator claims", {"role": "admin"})
    return store


class TestInMemoryStore:
    """Tests for adding and reading tokens/templates."""

    def test_add_and_get(self, populated_store):
        tokens = populated_store.get_generated_tokens()
        templates = populated_store.get_claims_templates()

        assert [t.subject for t in tokens] == ["user-1", "user-2"]
        assert tokens[0].description == "first"
        assert templates[0].claims == {"role": "admin"}

    def test_snapshots_are_read_only(self, populated_store):
        tokens = populated_store.get_generated_tokens()
        assert isinstance(tokens, tuple)

        populated_store.add_generated_token("user-3", {}, "g.h.i")
        assert len(tokens) == 2
        assert len(populated_store.get_generated_tokens()) == 3

    def test_claims_are_copied(self, store):
        claims = {"role": "admin"}
        store.add_claims_template("t", "", claims)
        claims["role"] = "changed"

        assert store.get_claims_template("t").claims == {"role": "admin"}

    def test_get_template_ignores_case(self, populated_store):
        assert populated_store.get_claims_template("admin").name == "Admin"
        assert populated_store.get_claims_template("ADMIN") is not None
        assert populated_store.get_claims_template("missing") is None

    def test_clear(self, populated_store):
        populated_store.clear_tokens()
        assert populated_store.get_generated_tokens() == ()
        assert len(populated_store.get_claims_templates()) == 1

        populated_store.clear_templates()
        assert populated_store.get_claims_templates() == ()


class TestExport:
    """Tests for export_to_file."""

    def test_document_format(self, populated_store, hs_settings, tmp_path):
        path = tmp_path / "out.json"
        message = populated_store.export_to_file(str(path), jwt_settings=hs_settings)

        assert "Export completed successfully" in message
        document = json.loads(path.read_text())
        assert document["version"] == "1.0"
        assert "exportDate" in document
        assert document["jwtSettings"]["Issuer"] == "app"
        assert document["tokens"][0]["subject"] == "user-1"
        assert "generatedAt" in document["tokens"][0]
        assert "description" not in document["tokens"][1]
        assert document["claimsTemplates"][0]["name"] == "Admin"
        assert "createdAt" in document["claimsTemplates"][0]

    def test_sections_can_be_excluded(self, populated_store, hs_settings, tmp_path):
        path = tmp_path / "out.json"
        populated_store.export_to_file(
            str(path),
            jwt_settings=hs_settings,
            include_tokens=False,
            include_templates=True,
            include_settings=False,
        )

        document = json.loads(path.read_text())
        assert "tokens" not in document
        assert "jwtSettings" not in document
        assert len(document["claimsTemplates"]) == 1

    def test_creates_parent_directory(self, store, tmp_path):
        path = tmp_path / "nested" / "dir" / "out.json"
        store.export_to_file(str(path))
        assert path.is_file()

    def test_unwritable_path(self, store, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ExportError):
            store.export_to_file(str(blocker / "out.json"))


class TestImport:
    """Tests for import_from_file."""

    def test_round_trip_appends(self, populated_store, tmp_path):
        path = tmp_path / "out.json"
        populated_store.export_to_file(str(path))

        result = populated_store.import_from_file(str(path))

        assert result.success is True
        assert result.tokens_imported == 2
        assert result.templates_imported == 1
        assert "Tokens: 2, Templates: 1" in result.message
        # no duplicate detection
        assert len(populated_store.get_generated_tokens()) == 4
        assert len(populated_store.get_claims_templates()) == 2

    def test_tokens_are_not_reverified(self, store, tmp_path):
        path = tmp_path / "in.json"
        path.write_text(json.dumps({
            "version": "1.0",
            "tokens": [{"subject": "x", "claims": {}, "token": "garbage"}],
        }))

        result = store.import_from_file(str(path))

        assert result.success is True
        assert store.get_generated_tokens()[0].token == "garbage"

    def test_missing_file(self, store, tmp_path):
        result = store.import_from_file(str(tmp_path / "missing.json"))

        assert result.success is False
        assert result.message == "Import file does not exist."

    def test_invalid_json(self, store, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")

        result = store.import_from_file(str(path))

        assert result.success is False
        assert result.message.startswith("Invalid JSON format")
        assert result.errors

    def test_invalid_schema(self, store, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"tokens": [{"claims": "not a mapping"}]}))

        result = store.import_from_file(str(path))

        assert result.success is False
        assert result.errors
        assert store.get_generated_tokens() == ()

    def test_not_utf8(self, store, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe{}")

        result = store.import_from_file(str(path))

        assert result.success is False
        assert result.message == "Import file is not valid UTF-8."
        assert result.errors

    def test_deeply_nested_json(self, store, tmp_path):
        path = tmp_path / "nested.json"
        path.write_text("[" * 100000 + "]" * 100000)

        result = store.import_from_file(str(path))

        assert result.success is False
        assert result.message.startswith("Invalid JSON format")


class TestExportFiles:
    """Tests for export file naming and listing."""

    def test_default_export_path(self, store):
        path = store.generate_default_export_path()

        assert path.startswith(str(store.export_dir))
        assert path.endswith(".json")
        assert "jwt_export_" in path

    def test_directory_created_lazily(self, store):
        assert not store.export_dir.exists()
        assert store.get_available_export_files() == []

    def test_available_files_newest_first(self, store):
        for name in ("jwt_export_20240101_000000.json", "jwt_export_20250101_000000.json"):
            store.export_to_file(str(store.export_dir / name))
        (store.export_dir / "notes.txt").write_text("")

        assert store.get_available_export_files() == [
            "jwt_export_20250101_000000.json",
            "jwt_export_20240101_000000.json",
        ]
