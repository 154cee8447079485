#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
"""
MCP server exposing the vault's tag index.
Lets an assistant look up tags and the notes filed under them.
"""
import os
import sys
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field
from mcp.server.fastmcp import FastMCP

from .cfgload import load_config
from .engine import TagEngine
from .scanner import LocalVault

logger = logging.getLogger(__name__)


def rotate_log_if_needed(log_path: Path | str, max_size_mb: float = 10) -> None:
    """Rotate log file if it exists and is over the size limit."""
    log_path = Path(log_path)
    max_size_bytes = max_size_mb * 1024 * 1024
    if log_path.exists() and log_path.stat().st_size > max_size_bytes:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        rotated_name = f"{log_path.stem}_{timestamp}_{os.getpid()}{log_path.suffix}"
        log_path.rename(log_path.parent / rotated_name)
        log_path.touch()


def configure_logging(config: dict[str, Any]) -> None:
    log_file = config["logging"]["log_file"]
    rotate_log_if_needed(log_file, config["logging"]["max_size_mb"])
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ],
    )


mcp = FastMCP("vaulttags")

_engine: TagEngine | None = None
_vault: LocalVault | None = None


async def _get_engine() -> TagEngine:
    """Open the configured vault on first use."""
    global _engine, _vault
    if _engine is None:
        config = load_config()
        _vault = LocalVault(config["vault"]["root"])
        engine = TagEngine.from_config(config)
        source = await engine.open(_vault)
        logger.info(f"Tag index ready (from {source}), {engine.store.meta.tag_count} tags")
        _engine = engine
    return _engine


@mcp.tool()
async def search_tags(
    query: Annotated[str, Field(description="Tag name or fragment; small typos are tolerated")],
) -> list[dict[str, Any]]:
    """Fuzzy search the tags used in the vault's notes."""
    engine = await _get_engine()
    return [asdict(m) for m in engine.search(query)]


@mcp.tool()
async def files_for_tag(
    tag: Annotated[str, Field(description="Exact tag name")],
) -> list[str]:
    """List the notes whose front matter carries a tag."""
    engine = await _get_engine()
    return engine.files_for_tag(tag.strip().lower())


@mcp.tool()
async def list_tags(
    limit: Annotated[int, Field(description="Maximum number of tags to return", ge=1)] = 100,
) -> list[dict[str, Any]]:
    """List the vault's tags, most used first."""
    engine = await _get_engine()
    return [asdict(t) for t in engine.all_tags()[:limit]]


@mcp.tool()
async def reindex() -> dict[str, Any]:
    """Rescan the vault and rebuild the tag index."""
    engine = await _get_engine()
    if engine.is_indexing():
        return {"status": "indexing"}
    await engine.open(_vault, force=True)
    return {"status": "ready", **asdict(engine.store.meta)}


def run_server(config_path: Path | None = None):
    """Start the MCP server."""
    if config_path:
        os.environ["VAULTTAGS_CONFIG"] = str(config_path)
    configure_logging(load_config())
    mcp.run()


if __name__ == "__main__":
    run_server()
