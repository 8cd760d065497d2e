import sys

from globe_field.cli import main

sys.exit(main())
