"""Tests for the write path: add, update, delete, register, context, locate."""

from __future__ import annotations

import pytest
from conftest import WIDGET_FILE, atomic_file, write_file

from notedefs.config import Settings
from notedefs.context import get_context_files
from notedefs.editing import DefinitionEditor, clean_aliases, validate_entry
from notedefs.errors import DefinitionError, ErrorKind, filesystem_error
from notedefs.frontmatter import get_definition_type, read_metadata
from notedefs.manager import DefinitionManager
from notedefs.vault import FileSystemVault


class NoRenameVault(FileSystemVault):
    """Vault on a file system that refuses renames."""

    async def rename(self, old_path: str, new_path: str) -> None:
        raise filesystem_error(f"Cannot rename {old_path}: read-only", path=old_path)


@pytest.fixture
def editor(manager) -> DefinitionEditor:
    return DefinitionEditor(manager)


class TestHelpers:
    """Tests for input cleaning and validation."""

    def test_clean_aliases_from_string(self):
        assert clean_aliases(" a, b ,, c ") == ["a", "b", "c"]

    def test_clean_aliases_from_list(self):
        assert clean_aliases(["  x ", "", "y"]) == ["x", "y"]
        assert clean_aliases(None) == []

    def test_validate_entry_trims(self):
        assert validate_entry("  Term ", "\n Body \n") == ("Term", "Body")

    @pytest.mark.parametrize(
        "phrase,content,message",
        [
            ("", "Body", "Please enter a phrase"),
            ("   ", "Body", "Please enter a phrase"),
            ("Term", "  ", "Please enter a definition"),
        ],
    )
    def test_validate_entry_rejects_blank(self, phrase, content, message):
        with pytest.raises(DefinitionError) as exc:
            validate_entry(phrase, content)

        assert exc.value.kind == ErrorKind.VALIDATION
        assert exc.value.message == message

    def test_validate_entry_rejects_multiline_phrase(self):
        with pytest.raises(DefinitionError):
            validate_entry("two\nlines", "Body")


class TestAddDefinition:
    """Tests for add_definition."""

    @pytest.mark.asyncio
    async def test_creates_default_file(self, editor, manager, vault_root):
        target = await editor.add_definition("Term", "alias one, alias two", "Meaning.")

        assert target == "Glossary/definitions.md"
        text = (vault_root / target).read_text(encoding="utf-8")
        assert text.startswith("---\ndef-type: consolidated\n---\n")
        assert "# Term\n*alias one, alias two*\n\nMeaning.\n\n---\n" in text

        definition = manager.index.get_definition("alias two")
        assert definition.phrase == "Term"
        assert definition.line_number == 5
        assert manager.settings.last_selected_definition_file == target

    @pytest.mark.asyncio
    async def test_appends_to_last_selected_file(self, editor, manager, vault_root):
        await editor.add_definition("First", None, "One.")
        await editor.add_definition("Second", [], "Two.")

        definitions = manager.index.get_all_definitions()
        assert [d.phrase for d in definitions] == ["First", "Second"]
        assert {d.source_file for d in definitions} == {"Glossary/definitions.md"}

    @pytest.mark.asyncio
    async def test_appends_to_explicit_file(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/hardware.md", "# CPU\nProcessor")

        await editor.add_definition("GPU", "graphics", "Graphics processor.", target_file="Glossary/hardware.md")

        assert path.read_text(encoding="utf-8").startswith("# CPU\nProcessor\n\n# GPU\n*graphics*\n")
        assert manager.index.get_definition("CPU").content == "Processor"
        assert manager.index.get_definition("graphics").source_file == "Glossary/hardware.md"

    @pytest.mark.asyncio
    async def test_underscore_divider_pattern_still_writes_hyphens(self, vault, scheduler, vault_root):
        mgr = DefinitionManager(vault, Settings(definition_folder="Glossary", divider_pattern="both"), scheduler=scheduler)

        target = await DefinitionEditor(mgr).add_definition("Term", None, "Meaning.")

        assert (vault_root / target).read_text(encoding="utf-8").endswith("Meaning.\n\n---\n")

    @pytest.mark.asyncio
    async def test_validation_failure_leaves_file_untouched(self, editor, vault_root):
        path = write_file(vault_root, "Glossary/definitions.md", WIDGET_FILE)

        with pytest.raises(DefinitionError) as exc:
            await editor.add_definition("  ", None, "Meaning.")

        assert exc.value.kind == ErrorKind.VALIDATION
        assert path.read_text(encoding="utf-8") == WIDGET_FILE

    @pytest.mark.asyncio
    async def test_requires_definition_folder(self, vault, scheduler):
        editor = DefinitionEditor(DefinitionManager(vault, Settings(), scheduler=scheduler))

        with pytest.raises(DefinitionError, match="definition folder"):
            await editor.add_definition("Term", None, "Meaning.")

    @pytest.mark.asyncio
    async def test_rejects_atomic_target(self, editor, vault_root):
        path = write_file(vault_root, "Glossary/Latency.md", atomic_file())
        before = path.read_text(encoding="utf-8")

        with pytest.raises(DefinitionError) as exc:
            await editor.add_definition("Term", None, "Meaning.", target_file="Glossary/Latency.md")

        assert exc.value.kind == ErrorKind.VALIDATION
        assert path.read_text(encoding="utf-8") == before

    @pytest.mark.asyncio
    async def test_missing_explicit_target(self, editor):
        with pytest.raises(DefinitionError) as exc:
            await editor.add_definition("Term", None, "Meaning.", target_file="Glossary/nope.md")

        assert exc.value.kind == ErrorKind.NAVIGATION


class TestUpdateDefinition:
    """Tests for update_definition."""

    @pytest.mark.asyncio
    async def test_update_consolidated_block(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        widget = manager.index.get_definition("Widget")

        result = await editor.update_definition(widget, "Widget", "gadget, doohickey", "A bigger device.")

        assert result == "Glossary/terms.md"
        text = path.read_text(encoding="utf-8")
        assert text.startswith("# Widget\n*gadget, doohickey*\n\nA bigger device.\n\n---\n")
        assert manager.index.get_definition("doohickey").content == "A bigger device."
        assert manager.index.get_definition("Gizmo").content == "Another small device."

    @pytest.mark.asyncio
    async def test_update_last_block_without_divider(self, editor, manager, vault_root):
        write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        gizmo = manager.index.get_definition("Gizmo")

        await editor.update_definition(gizmo, "Gizmo", ["thingamajig"], "Renamed device.")

        updated = manager.index.get_definition("thingamajig")
        assert updated.phrase == "Gizmo"
        assert updated.content == "Renamed device."
        assert manager.index.get_definition("Widget").content == "A small mechanical device."

    @pytest.mark.asyncio
    async def test_update_stale_line_number(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        gizmo = manager.index.get_definition("Gizmo")
        path.write_text("Intro line\n" + WIDGET_FILE, encoding="utf-8")

        with pytest.raises(DefinitionError) as exc:
            await editor.update_definition(gizmo, "Gizmo", None, "Changed.")

        assert exc.value.kind == ErrorKind.NAVIGATION
        assert path.read_text(encoding="utf-8") == "Intro line\n" + WIDGET_FILE

    @pytest.mark.asyncio
    async def test_update_atomic_renames_file(self, editor, manager, vault_root):
        write_file(vault_root, "Glossary/Latency.md", atomic_file(["lag"], "Time taken."))
        await manager.load_definitions()
        latency = manager.index.get_definition("Latency")

        result = await editor.update_definition(latency, "Delay", ["lag", "wait"], "Time spent waiting.")

        assert result == "Glossary/Delay.md"
        assert not (vault_root / "Glossary" / "Latency.md").exists()
        delay = manager.index.get_definition("wait")
        assert delay.phrase == "Delay"
        assert delay.source_type == "atomic"
        assert delay.aliases == ["lag", "wait"]
        assert delay.content == "Time spent waiting."
        assert manager.index.get_definition("Latency") is None

    @pytest.mark.asyncio
    async def test_update_atomic_rejects_existing_name(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/Latency.md", atomic_file())
        write_file(vault_root, "Glossary/Delay.md", atomic_file())
        await manager.load_definitions()
        before = path.read_text(encoding="utf-8")

        with pytest.raises(DefinitionError) as exc:
            await editor.update_definition(manager.index.get_definition("Latency"), "Delay", None, "x")

        assert exc.value.kind == ErrorKind.VALIDATION
        assert path.read_text(encoding="utf-8") == before

    @pytest.mark.asyncio
    async def test_update_atomic_failed_rename_leaves_file_untouched(self, scheduler, vault_root):
        path = write_file(vault_root, "Glossary/Latency.md", atomic_file(["lag"], "Time taken."))
        before = path.read_text(encoding="utf-8")
        mgr = DefinitionManager(
            NoRenameVault(vault_root), Settings(definition_folder="Glossary"), scheduler=scheduler
        )
        await mgr.load_definitions()

        with pytest.raises(DefinitionError) as exc:
            await DefinitionEditor(mgr).update_definition(
                mgr.index.get_definition("Latency"), "Delay", ["wait"], "Changed."
            )

        assert exc.value.kind == ErrorKind.FILESYSTEM
        assert path.read_text(encoding="utf-8") == before
        assert not (vault_root / "Glossary" / "Delay.md").exists()

    @pytest.mark.asyncio
    async def test_update_atomic_rejects_slash(self, editor, manager, vault_root):
        write_file(vault_root, "Glossary/Latency.md", atomic_file())
        await manager.load_definitions()

        with pytest.raises(DefinitionError, match="slashes"):
            await editor.update_definition(manager.index.get_definition("Latency"), "a/b", None, "x")

    @pytest.mark.asyncio
    async def test_update_missing_file(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        widget = manager.index.get_definition("Widget")
        path.unlink()

        with pytest.raises(DefinitionError) as exc:
            await editor.update_definition(widget, "Widget", None, "x")

        assert exc.value.kind == ErrorKind.NAVIGATION


class TestDeleteDefinition:
    """Tests for delete_definition."""

    @pytest.mark.asyncio
    async def test_delete_consolidated_block(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()

        await editor.delete_definition(manager.index.get_definition("Widget"))

        assert "# Widget" not in path.read_text(encoding="utf-8")
        assert manager.index.get_definition("gadget") is None
        gizmo = manager.index.get_definition("Gizmo")
        assert gizmo.content == "Another small device."

    @pytest.mark.asyncio
    async def test_delete_atomic_file(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/Latency.md", atomic_file(["lag"]))
        await manager.load_definitions()

        await editor.delete_definition(manager.index.get_definition("lag"))

        assert not path.exists()
        assert len(manager.index) == 0


class TestFrontmatterRegistration:
    """Tests for register_definition_file and add_context."""

    @pytest.mark.asyncio
    async def test_register_atomic(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/Bandwidth.md", "Data per second.\n")

        await editor.register_definition_file("Glossary/Bandwidth.md", "atomic")

        text = path.read_text(encoding="utf-8")
        assert get_definition_type(text) == "atomic"
        assert text.rstrip().endswith("Data per second.")
        assert manager.index.get_definition("Bandwidth").source_type == "atomic"

    @pytest.mark.asyncio
    async def test_register_keeps_other_keys(self, editor, vault_root):
        path = write_file(vault_root, "Glossary/x.md", "---\ntags: [net]\n---\n# X\nBody\n")

        await editor.register_definition_file("Glossary/x.md", "consolidated")

        metadata = read_metadata(path.read_text(encoding="utf-8"))
        assert metadata == {"tags": ["net"], "def-type": "consolidated"}

    @pytest.mark.asyncio
    async def test_register_unknown_type(self, editor, vault_root):
        write_file(vault_root, "Glossary/x.md", "Body")

        with pytest.raises(DefinitionError) as exc:
            await editor.register_definition_file("Glossary/x.md", "mixed")

        assert exc.value.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_register_missing_file(self, editor):
        with pytest.raises(DefinitionError) as exc:
            await editor.register_definition_file("Glossary/none.md", "atomic")

        assert exc.value.kind == ErrorKind.NAVIGATION

    @pytest.mark.asyncio
    async def test_add_context_once(self, editor, vault_root):
        path = write_file(vault_root, "notes/today.md", "Some text\n")

        await editor.add_context("notes/today.md", "Glossary/a.md")
        await editor.add_context("notes/today.md", "Glossary/a.md")
        await editor.add_context("notes/today.md", "Glossary/b.md")

        text = path.read_text(encoding="utf-8")
        assert get_context_files(read_metadata(text)) == ["Glossary/a.md", "Glossary/b.md"]
        assert "Some text" in text

    @pytest.mark.asyncio
    async def test_add_context_upgrades_scalar(self, editor, vault_root):
        path = write_file(vault_root, "notes/today.md", "---\ndef-context: Glossary/a.md\n---\nBody\n")

        await editor.add_context("notes/today.md", "Glossary/b.md")

        metadata = read_metadata(path.read_text(encoding="utf-8"))
        assert metadata["def-context"] == ["Glossary/a.md", "Glossary/b.md"]

    @pytest.mark.asyncio
    async def test_add_context_malformed_frontmatter(self, editor, vault_root):
        original = "---\ndef-context: [broken\n---\nBody\n"
        path = write_file(vault_root, "notes/bad.md", original)

        with pytest.raises(DefinitionError) as exc:
            await editor.add_context("notes/bad.md", "Glossary/a.md")

        assert exc.value.kind == ErrorKind.PARSE
        assert path.read_text(encoding="utf-8") == original


class TestLocate:
    """Tests for locate."""

    @pytest.mark.asyncio
    async def test_locate_consolidated(self, editor, manager, vault_root):
        write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()

        location = await editor.locate(manager.index.get_definition("Gizmo"))

        assert (location.path, location.line) == ("Glossary/terms.md", 8)

    @pytest.mark.asyncio
    async def test_locate_atomic(self, editor, manager, vault_root):
        write_file(vault_root, "Glossary/Latency.md", atomic_file())
        await manager.load_definitions()

        location = await editor.locate(manager.index.get_definition("Latency"))

        assert (location.path, location.line) == ("Glossary/Latency.md", 1)

    @pytest.mark.asyncio
    async def test_locate_line_past_end(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        gizmo = manager.index.get_definition("Gizmo")
        path.write_text("# Gizmo\n", encoding="utf-8")

        with pytest.raises(DefinitionError) as exc:
            await editor.locate(gizmo)

        assert exc.value.kind == ErrorKind.NAVIGATION

    @pytest.mark.asyncio
    async def test_locate_deleted_file(self, editor, manager, vault_root):
        path = write_file(vault_root, "Glossary/terms.md", WIDGET_FILE)
        await manager.load_definitions()
        widget = manager.index.get_definition("Widget")
        path.unlink()

        with pytest.raises(DefinitionError, match="not found"):
            await editor.locate(widget)
