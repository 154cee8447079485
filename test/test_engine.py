import copy
import tempfile
import time
import unittest
from pathlib import Path

from vaulttags.cfgload import _DEFAULTS
from vaulttags.engine import TagEngine
from vaulttags.persistence import KeyValueStore, TagIndexCache
from vaulttags.scanner import LocalVault
from vaulttags.store import TagIndex, TagIndexMeta


def note(*tags):
    return f"---\ntags: [{', '.join(tags)}]\n---\nbody\n"


class TestTagEngine(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.vault_dir = root / "vault"
        self.vault_dir.mkdir()
        self.storage_dir = root / "storage"

        self.config = copy.deepcopy(_DEFAULTS)
        self.config["vault"]["root"] = str(self.vault_dir)
        self.config["storage"]["storage_dir"] = str(self.storage_dir)

        self.write("a.md", note("project", "ideas"))
        self.write("b.md", note("project"))
        self.vault = LocalVault(self.vault_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, rel_path, content):
        path = self.vault_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    async def test_first_open_scans_then_uses_cache(self):
        engine = TagEngine.from_config(self.config)
        self.assertEqual(await engine.open(self.vault), "scan")
        self.assertTrue(engine.is_built())

        reopened = TagEngine.from_config(self.config)
        self.assertEqual(await reopened.open(self.vault), "cache")
        self.assertEqual(
            reopened.store.index.associations(),
            engine.store.index.associations(),
        )
        self.assertEqual(reopened.search("pro")[0].label, "project")

    async def test_cache_is_per_vault(self):
        await TagEngine.from_config(self.config).open(self.vault)

        other_dir = Path(self._tmp.name) / "other"
        other_dir.mkdir()
        (other_dir / "x.md").write_text(note("elsewhere"), encoding="utf-8")
        other_config = copy.deepcopy(self.config)
        other_config["vault"]["root"] = str(other_dir)

        engine = TagEngine.from_config(other_config)
        self.assertEqual(await engine.open(LocalVault(other_dir)), "scan")
        self.assertEqual(engine.files_for_tag("project"), [])

    async def test_force_rescans(self):
        engine = TagEngine.from_config(self.config)
        await engine.open(self.vault)
        self.write("c.md", note("garden"))

        reopened = TagEngine.from_config(self.config)
        self.assertEqual(await reopened.open(self.vault, force=True), "scan")
        self.assertEqual(reopened.files_for_tag("garden"), ["c.md"])

    async def test_stale_cache_rescans(self):
        kv = KeyValueStore(self.storage_dir / "tag_cache.db")
        cache = TagIndexCache(kv, key=self.config["storage"]["cache_key"])
        old = int(time.time() * 1000) - 2 * self.config["storage"]["max_age_ms"]
        cache.save(TagIndex.from_files({"gone.md": ["old"]}), TagIndexMeta(last_indexed=old))

        engine = TagEngine(cache=cache, config=self.config)
        self.assertEqual(await engine.open(self.vault), "scan")
        self.assertEqual(engine.files_for_tag("old"), [])

    async def test_engine_without_cache(self):
        engine = TagEngine(config=self.config)
        self.assertEqual(await engine.open(self.vault), "scan")
        self.assertEqual(sorted(engine.files_for_tag("project")), ["a.md", "b.md"])

    async def test_file_events_update_index_matcher_and_cache(self):
        engine = TagEngine.from_config(self.config)
        await engine.open(self.vault)

        engine.on_save("c.md", note("garden"))
        self.assertEqual(engine.files_for_tag("garden"), ["c.md"])
        self.assertEqual(engine.search("gardn")[0].label, "garden")

        engine.on_rename("c.md", "outside/c.md")
        self.assertEqual(engine.files_for_tag("garden"), ["outside/c.md"])

        engine.on_delete("outside/c.md")
        self.assertEqual(engine.files_for_tag("garden"), [])
        self.assertEqual(engine.search("garden"), [])

        restored, _ = engine.cache.load()
        self.assertEqual(restored.associations(), engine.store.index.associations())

    async def test_journal_events(self):
        engine = TagEngine(config=self.config)
        await engine.open(self.vault)
        engine.on_journal_entry("2024-03-01", "e1", ["Health"])
        self.assertEqual(engine.files_for_tag("health"), ["journal:2024-03-01#e1"])
        engine.on_journal_entry_deleted("2024-03-01", "e1")
        self.assertEqual(engine.files_for_tag("health"), [])

    async def test_events_during_build_are_replayed(self):
        engine = TagEngine(config=self.config)
        vault = LocalVault(self.vault_dir)
        original_list = vault.list_directory
        fired = []

        async def list_and_save(rel_path=""):
            if not fired:
                fired.append(True)
                self.assertTrue(engine.is_indexing())
                engine.on_save("late.md", note("late"))
                engine.on_delete("b.md")
                self.assertEqual(engine.pending_events, 2)
            return await original_list(rel_path)

        vault.list_directory = list_and_save
        await engine.open(vault)

        self.assertEqual(engine.pending_events, 0)
        self.assertEqual(engine.files_for_tag("late"), ["late.md"])
        self.assertEqual(engine.files_for_tag("project"), ["a.md"])
        self.assertEqual(engine.search("late")[0].label, "late")

    async def test_close_discards_index(self):
        engine = TagEngine(config=self.config)
        await engine.open(self.vault)
        engine.close()
        self.assertFalse(engine.is_built())
        self.assertEqual(engine.search("project"), [])
        self.assertEqual(engine.all_tags(), [])

    async def test_close_during_scan_discards_result(self):
        engine = TagEngine.from_config(self.config)
        vault = LocalVault(self.vault_dir)
        original_list = vault.list_directory
        closed = []

        async def list_and_close(rel_path=""):
            if not closed:
                closed.append(True)
                engine.on_save("late.md", note("late"))
                engine.close()
            return await original_list(rel_path)

        vault.list_directory = list_and_close
        self.assertEqual(await engine.open(vault), "closed")

        self.assertFalse(engine.is_built())
        self.assertFalse(engine.is_indexing())
        self.assertEqual(engine.pending_events, 0)
        self.assertEqual(engine.search("project"), [])
        self.assertIsNone(engine.cache.load())

        self.assertEqual(await engine.open(self.vault), "scan")
        self.assertEqual(sorted(engine.files_for_tag("project")), ["a.md", "b.md"])

    async def test_corrupt_cache_database_falls_back_to_scan(self):
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        (self.storage_dir / "tag_cache.db").write_bytes(b"not a sqlite database" * 50)

        engine = TagEngine.from_config(self.config)
        self.assertEqual(await engine.open(self.vault), "scan")
        self.assertEqual(sorted(engine.files_for_tag("project")), ["a.md", "b.md"])

        engine.on_save("c.md", note("garden"))
        self.assertEqual(engine.files_for_tag("garden"), ["c.md"])

    async def test_selected_tag(self):
        engine = TagEngine(config=self.config)
        await engine.open(self.vault)
        self.assertEqual(engine.selected_files(), [])

        engine.select_tag(" Ideas ")
        self.assertEqual(engine.selected_files(), ["a.md"])

        engine.on_save("a.md", note("project"))
        self.assertIsNone(engine.store.selected_tag)
        self.assertEqual(engine.selected_files(), [])

    async def test_all_tags_by_count(self):
        engine = TagEngine(config=self.config)
        await engine.open(self.vault)
        self.assertEqual(
            [(t.label, t.count) for t in engine.all_tags()],
            [("project", 2), ("ideas", 1)],
        )


if __name__ == "__main__":
    unittest.main()
