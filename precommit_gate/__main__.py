import sys

from precommit_gate.cli import main

sys.exit(main())
