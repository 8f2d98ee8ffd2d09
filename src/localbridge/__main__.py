import sys

from localbridge.cli import main

sys.exit(main())
