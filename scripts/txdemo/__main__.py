import sys

from txdemo.cli import main

sys.exit(main())
