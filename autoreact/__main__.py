import sys

from autoreact.launcher import main

sys.exit(main())
