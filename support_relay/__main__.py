import sys

from support_relay.cli import main

sys.exit(main())
