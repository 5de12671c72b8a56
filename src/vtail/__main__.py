import sys

from vtail.cli import main

sys.exit(main())
