import sys

from vectordb_text.cli import main


sys.exit(main())
