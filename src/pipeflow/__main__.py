"""Allow ``python -m pipeflow``."""

from .cli import main

main()
