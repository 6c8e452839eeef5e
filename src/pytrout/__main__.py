import sys

from pytrout.cli import main

sys.exit(main())
