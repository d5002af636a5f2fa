"""Allow ``python -m pincho``."""

from pincho.cli.main import main

main()
