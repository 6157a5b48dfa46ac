"""Allow ``python -m selfstudy``."""

from selfstudy.cli.main import run

if __name__ == "__main__":
    run()
