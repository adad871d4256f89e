import sys

from social_rss.cli import main

sys.exit(main())
