#!/usr/bin/env python
"""
Image Filter Server - Root-level launcher
"""

import sys
from pathlib import Path

# Add project root to sys.path so the imagefilter package is importable
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from imagefilter.main import main

if __name__ == "__main__":
    main()
