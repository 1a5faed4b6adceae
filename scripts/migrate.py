#!/usr/bin/env python3
"""Apply migrations/versions/*.sql against the app Postgres database."""
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import asyncpg
from dotenv import load_dotenv

for p in [ROOT / "config" / "env" / ".env", ROOT / ".env"]:
    if p.exists():
        load_dotenv(p)
        break

from dualquery.storage.postgres import get_app_db_url


def split_statements(sql: str) -> list[str]:
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    return [stmt.strip() + ";" for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def run_migrations(url: str) -> None:
    conn = await asyncpg.connect(url)
    try:
        for sql_path in sorted((ROOT / "migrations" / "versions").glob("*.sql")):
            for stmt in split_statements(sql_path.read_text(encoding="utf-8")):
                await conn.execute(stmt)
            print(f"Migration {sql_path.name} applied successfully.")
    finally:
        await conn.close()


def main():
    try:
        url = get_app_db_url(dict(os.environ))
    except ValueError as e:
        print(f"{e}. Set it in config/env/.env or .env", file=sys.stderr)
        sys.exit(1)
    asyncio.run(run_migrations(url))


if __name__ == "__main__":
    main()
