"""Allow ``python -m peanutlink``."""

from peanutlink.main import main

main()
