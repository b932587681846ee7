import sys

from dirmirror.main import main

sys.exit(main())
