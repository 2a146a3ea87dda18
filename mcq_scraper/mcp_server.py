"""MCP server exposing the exam scraper as a tool."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import ScrapeConfig
from .crawler import run_scrape
from .emitter import records_to_json

logger = logging.getLogger("mcq_scraper.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="mcq-scraper")


@mcp.tool()
async def scrape_exam(
    url: str,
    subject: str = "",
) -> str:
    """Render an exam page and return its questions as a JSON array."""

    with tempfile.TemporaryDirectory(prefix="mcq-scraper-") as tmp_dir:
        config = ScrapeConfig(output_root=Path(tmp_dir))

        def choose(defaults):
            return {**defaults, "subject": subject or defaults["subject"]}

        result = await run_scrape(url, config, choose_inputs=choose)
        if not result.records:
            raise RuntimeError(f"No questions found on {url}")
        return records_to_json(result.records)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
