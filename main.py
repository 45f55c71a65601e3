"""One Word At A Time — launcher. Equivalent to the `owaat` console script."""

import sys

from owaat.cli import main

if __name__ == "__main__":
    sys.exit(main())
