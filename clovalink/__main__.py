import sys

from clovalink.cli import main

sys.exit(main())
