#!/usr/bin/env python3
"""Generate the devotional for today (UTC), or for --date."""
import asyncio
from datetime import date

from ._env import base_parser, load_environment


def main() -> int:
    parser = base_parser(__doc__)
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="day to generate, YYYY-MM-DD")
    parser.add_argument("--theme", default=None, help="optional theme for the verse suggestion")
    args = parser.parse_args()
    load_environment(args.env_file)

    from ..db.base import SessionLocal
    from ..services.content import ContentService, utc_today

    target = args.date or utc_today()
    db = SessionLocal()
    try:
        result = asyncio.run(ContentService(db).generate_daily_content(target, theme=args.theme))
    finally:
        db.close()

    print(result.message)
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
