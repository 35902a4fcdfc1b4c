import sys

from addon_atlas.cli import main

sys.exit(main())
