#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
"""
CLI entry point for the vaulttags command.

Usage:
    vaulttags [VAULT] --search "query" [--json]
    vaulttags [VAULT] --tag LABEL
    vaulttags [VAULT] --list-tags | --list-files
    vaulttags [VAULT]                      (index summary)
    vaulttags [VAULT] --rebuild [--sync-vocabulary]
"""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaulttags",
        description="Index and search the front matter tags of a notes vault",
        epilog=(
            "config file search order (first found wins):\n"
            "  1. --config PATH argument\n"
            "  2. VAULTTAGS_CONFIG environment variable\n"
            "  3. ./config.yaml\n"
            "  4. ~/.config/vaulttags/config.yaml\n"
            "  If none found, built-in defaults are used."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("vault", nargs="?", default=None,
                        help="Vault directory (defaults to vault.root from config)")
    parser.add_argument("--search", metavar="QUERY", help="Fuzzy search the tag vocabulary")
    parser.add_argument("--tag", metavar="LABEL", help="List the documents bearing a tag")
    parser.add_argument("--list-tags", action="store_true",
                        help="List all tags by usage count")
    parser.add_argument("--list-files", action="store_true",
                        help="List all indexed documents with their tags")
    parser.add_argument("--rebuild", action="store_true",
                        help="Ignore the cached index and rescan the vault")
    parser.add_argument("--sync-vocabulary", action="store_true",
                        help="Merge the index into the vault's .editor-tags.yaml")
    parser.add_argument("--config", help="Path to config.yaml (overrides auto-discovery)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show diagnostic messages (cache use, skipped files)")
    parser.add_argument("--dump-defaults", action="store_true",
                        help="Print all default configuration values as YAML, then exit")
    return parser


def main(argv=None) -> int:
    """Entry point for the `vaulttags` command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_level = logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)

    if args.dump_defaults:
        import yaml
        from .cfgload import _DEFAULTS
        yaml.safe_dump(_DEFAULTS, sys.stdout, default_flow_style=False, sort_keys=False)
        return 0

    from .cfgload import load_config
    from .engine import TagEngine
    from .scanner import LocalVault

    config = load_config(Path(args.config) if args.config else None)
    vault_root = Path(args.vault or config["vault"]["root"])
    vault = LocalVault(vault_root)
    if not vault.is_available():
        print(f"Error: vault directory not accessible: {vault_root}", file=sys.stderr)
        return 1

    config["vault"]["root"] = str(vault_root)
    engine = TagEngine.from_config(config)
    source = asyncio.run(engine.open(vault, force=args.rebuild))
    logging.getLogger(__name__).info(f"Tag index loaded from {source}")

    if args.sync_vocabulary:
        from .vocabulary import TagVocabulary
        vocabulary = TagVocabulary(vault_root)
        vocabulary.load(engine.store.index)
        vocabulary.merge_from_index(engine.store.index)
        vocabulary.save()

    if args.search is not None:
        matches = engine.search(args.search)
        if args.json:
            print(json.dumps([asdict(m) for m in matches], indent=2))
        elif not matches:
            print("No matching tags.")
        else:
            for m in matches:
                print(f"{m.label}  ({m.count})  score {m.score:.1f}")
        return 0

    if args.tag is not None:
        engine.select_tag(args.tag)
        paths = engine.selected_files()
        if args.json:
            print(json.dumps(paths, indent=2))
        else:
            for p in paths:
                print(p)
        return 0

    if args.list_files:
        files = dict(sorted(engine.store.index.files_to_tags.items()))
        if args.json:
            print(json.dumps(files, indent=2))
        else:
            for path, tags in files.items():
                print(f"{path}: {', '.join(tags)}")
        return 0

    if args.list_tags:
        tags = engine.all_tags()
        if args.json:
            print(json.dumps([asdict(t) for t in tags], indent=2))
        elif not tags:
            print("No tags yet.")
        else:
            for entry in tags:
                print(f"{entry.count:5d}  {entry.label}")
        return 0

    # Default view: index summary
    meta = engine.store.meta
    if args.json:
        print(json.dumps({"source": source, **asdict(meta)}, indent=2))
    else:
        print(f"{meta.file_count} documents, {meta.tag_count} tags (from {source})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
