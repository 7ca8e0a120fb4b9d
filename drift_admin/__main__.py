import sys

from drift_admin.cli import main

sys.exit(main())
