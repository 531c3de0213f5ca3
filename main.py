"""
Clean main entry point for Site Audit
"""
import sys

from app import main


if __name__ == "__main__":
    sys.exit(main())
