"""Allow ``python -m roster``."""

from roster.cli.main import main

main()
