"""Entry point for running graphtutorial as a module.

Usage:
    python -m graphtutorial validate-config
    python -m graphtutorial --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from graphtutorial.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
