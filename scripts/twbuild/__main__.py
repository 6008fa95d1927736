"""
Entry point for running twbuild as a module: python -m twbuild
"""

import sys

from twbuild.build import main

if __name__ == "__main__":
    sys.exit(main())
