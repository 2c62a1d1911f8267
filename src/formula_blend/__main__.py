import sys

from formula_blend.cli import main

if __name__ == "__main__":
    sys.exit(main())
