"""Allow running as: python -m prohedge"""
from dotenv import load_dotenv

load_dotenv()

from prohedge.main import cli_main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(cli_main())
