"""Allow ``python -m sqlapigate``."""

from sqlapigate.cli.commands import app

if __name__ == "__main__":
    app()
