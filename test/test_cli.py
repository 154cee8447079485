"""Tests for the vaulttags command line."""

import json

import pytest
import yaml

from conftest import write_note
from vaulttags.cli import main


@pytest.fixture
def config_file(test_config, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(test_config), encoding="utf-8")
    return path


def run_cli(config_file, *args):
    return main(["--config", str(config_file), *args])


class TestCli:

    def test_list_tags(self, sample_vault, config_file, capsys):
        assert run_cli(config_file, "--list-tags") == 0
        out = capsys.readouterr().out
        lines = out.strip().splitlines()
        assert lines[0].split() == ["3", "project"]

    def test_default_prints_summary(self, sample_vault, config_file, capsys):
        assert run_cli(config_file) == 0
        assert capsys.readouterr().out.strip() == "3 documents, 3 tags (from scan)"

        assert run_cli(config_file, "--json") == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["source"] == "cache"
        assert summary["file_count"] == 3
        assert summary["tag_count"] == 3

    def test_search_json(self, sample_vault, config_file, capsys):
        assert run_cli(config_file, "--search", "proj", "--json") == 0
        matches = json.loads(capsys.readouterr().out)
        assert matches[0]["label"] == "project"
        assert matches[0]["count"] == 3

    def test_search_no_matches(self, sample_vault, config_file, capsys):
        assert run_cli(config_file, "--search", "zzzzqqq") == 0
        assert "No matching tags." in capsys.readouterr().out

    def test_tag_lookup(self, sample_vault, config_file, capsys):
        assert run_cli(config_file, "--tag", "Meeting", "--json") == 0
        assert json.loads(capsys.readouterr().out) == ["work/c.md"]

    def test_list_files(self, sample_vault, config_file, capsys):
        assert run_cli(config_file, "--list-files", "--json") == 0
        files = json.loads(capsys.readouterr().out)
        assert files["a.md"] == ["project", "ideas"]
        assert ".obsidian/hidden.md" not in files

    def test_rebuild_picks_up_new_notes(self, sample_vault, config_file, capsys):
        run_cli(config_file, "--list-tags")
        write_note(sample_vault, "new.md", ["fresh"])
        run_cli(config_file, "--list-tags")
        assert "fresh" not in capsys.readouterr().out

        run_cli(config_file, "--rebuild", "--list-tags")
        assert "fresh" in capsys.readouterr().out

    def test_sync_vocabulary(self, sample_vault, config_file):
        assert run_cli(config_file, "--sync-vocabulary") == 0
        data = yaml.safe_load((sample_vault / ".editor-tags.yaml").read_text(encoding="utf-8"))
        assert {"name": "project", "count": 3} in data["tags"]

    def test_vault_argument_overrides_config(self, test_env, config_file, tmp_path, capsys):
        other = tmp_path / "other"
        write_note(other, "x.md", ["elsewhere"])
        assert main(["--config", str(config_file), str(other), "--list-tags", "--json"]) == 0
        tags = json.loads(capsys.readouterr().out)
        assert [t["label"] for t in tags] == ["elsewhere"]

    def test_missing_vault(self, config_file, tmp_path, capsys):
        assert main(["--config", str(config_file), str(tmp_path / "missing")]) == 1
        assert "not accessible" in capsys.readouterr().err

    def test_dump_defaults(self, capsys):
        assert main(["--dump-defaults"]) == 0
        dumped = yaml.safe_load(capsys.readouterr().out)
        assert dumped["storage"]["cache_key"] == "editorTagIndex"
