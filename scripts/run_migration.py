import sys

from equiptrak.db.migrate import main

if __name__ == "__main__":
    sys.exit(main())
