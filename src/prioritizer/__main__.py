"""Entry point for running the prioritizer as a module.

Usage:
    python -m prioritizer validate-config
    python -m prioritizer --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from prioritizer.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
