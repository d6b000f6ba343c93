"""Entry point for running mailthread as a module.

Usage:
    python -m mailthread build messages.json
    python -m mailthread --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from mailthread.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
