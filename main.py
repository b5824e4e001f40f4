import sys

from jwt_validator.cli.main import main

# 入口函数
if __name__ == "__main__":
    sys.exit(main())
