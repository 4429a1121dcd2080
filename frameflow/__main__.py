import sys

from frameflow.main import main

sys.exit(main())
