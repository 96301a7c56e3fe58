import sys

from cost_estimator.cli import main

sys.exit(main())
