"""Allow ``python -m dcinstall``."""

from dcinstall.cli import main

main()
