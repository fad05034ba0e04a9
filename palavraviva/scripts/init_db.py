#!/usr/bin/env python3
"""Create all database tables."""
from ._env import base_parser, load_environment


def main() -> int:
    args = base_parser(__doc__).parse_args()
    load_environment(args.env_file)

    from ..db.base import init_db

    print("Initializing database...")
    init_db()
    print("Database initialization complete!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
