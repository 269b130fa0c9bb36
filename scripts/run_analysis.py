#!/usr/bin/env python
"""
run_analysis.py
- Full London Airbnb spatial analysis, top to bottom, in one run
- Tables → outputs/tables/, figures → outputs/figures/
"""

import sys
import warnings
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

warnings.filterwarnings('ignore')

from london_airbnb import config
from london_airbnb.pipeline import run_analysis


def main():
    config.print_config()
    run_analysis()
    print("\n" + "=" * 80)
    print("✓ ANALYSIS COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
