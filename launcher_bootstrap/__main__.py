import sys

from launcher_bootstrap.cli import main

sys.exit(main())
