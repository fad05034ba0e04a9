import argparse
import logging

from dotenv import load_dotenv


def base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--env-file", default=".env", help="dotenv file to load before connecting (default: .env)")
    return parser


def load_environment(env_file: str) -> None:
    """Load env vars and set up console logging.

    Must run before anything imports palavraviva.db, which binds the engine
    from settings at import time.
    """
    load_dotenv(env_file)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
