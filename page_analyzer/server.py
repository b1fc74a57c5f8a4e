from __future__ import annotations

"""
Thin entrypoint for the Page Analyzer (FastAPI) server.

  DATABASE_URL=... python -m page_analyzer.server
"""

from page_analyzer.web.urls_api import run_server


def main() -> None:
    run_server()


if __name__ == "__main__":
    main()
