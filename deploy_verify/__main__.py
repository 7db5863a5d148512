import sys

from deploy_verify.cli import main

if __name__ == '__main__':
    sys.exit(main())
