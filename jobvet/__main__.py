import sys

from jobvet.cli import main

sys.exit(main())
