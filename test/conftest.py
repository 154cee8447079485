"""Shared pytest fixtures for vaulttags tests."""
import copy

import pytest

from vaulttags.cfgload import _DEFAULTS


@pytest.fixture
def test_env(tmp_path):
    """Create isolated test environment with temp directories.

    Returns dict with:
        - vault_dir: Path to an empty temporary vault
        - storage_dir: Path to temporary storage directory
        - db_path: Path to the SQLite tag cache database
    """
    vault_dir = tmp_path / "vault"
    storage_dir = tmp_path / "storage"
    vault_dir.mkdir()
    storage_dir.mkdir()

    return {
        "vault_dir": vault_dir,
        "storage_dir": storage_dir,
        "db_path": storage_dir / "tag_cache.db",
    }


@pytest.fixture
def test_config(test_env):
    """Default configuration pointed at the temporary vault and storage."""
    config = copy.deepcopy(_DEFAULTS)
    config["vault"]["root"] = str(test_env["vault_dir"])
    config["storage"]["storage_dir"] = str(test_env["storage_dir"])
    config["logging"]["log_file"] = str(test_env["storage_dir"] / "vaulttags-mcp.log")
    return config


def write_note(vault_dir, rel_path, tags=None, body="Some text.\n", raw_header=None):
    """Write a markdown note, creating parent folders as needed."""
    path = vault_dir / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if raw_header is not None:
        content = f"---\n{raw_header}\n---\n{body}"
    elif tags is None:
        content = body
    else:
        content = f"---\ntags: [{', '.join(tags)}]\n---\n{body}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def sample_vault(test_env):
    """A small vault: three notes tagged 'project', one hidden, one non-markdown."""
    vault_dir = test_env["vault_dir"]
    write_note(vault_dir, "a.md", ["project", "ideas"])
    write_note(vault_dir, "b.md", ["project"])
    write_note(vault_dir, "work/c.md", ["Project", "meeting"])
    write_note(vault_dir, "plain.md")
    write_note(vault_dir, ".obsidian/hidden.md", ["secret"])
    write_note(vault_dir, "notes.txt", ["text-only"])
    return vault_dir
