import sys

from plugin_registry.cli import main

sys.exit(main())
