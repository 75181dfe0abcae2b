"""
Run the service under uvicorn.

Usage:
    python -m student_service                 # HOST/PORT from environment
    PORT=9000 python -m student_service
"""

import uvicorn

from student_service import config


def main():
    uvicorn.run("student_service.main:app", host=config.HOST, port=config.PORT, log_config=None)


if __name__ == "__main__":
    main()
