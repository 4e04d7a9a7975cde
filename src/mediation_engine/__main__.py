"""
Allow running the package as a module:
    python -m mediation_engine evaluate "What is 2+2?" "4"
    python -m mediation_engine memory
"""

import sys

from mediation_engine.cli import main

if __name__ == '__main__':
    sys.exit(main())
