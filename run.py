"""
Entry Point Script (Bootstrap)
==============================
Development runner for the command-line caller.

Why is this file needed?
------------------------
1. It is located outside the 'src' package to act as a convenient runner.
2. It modifies 'sys.path' so 'from propellertof...' resolves without an
   editable install.

Usage:
    $ python run.py propeller.png --out-dir out --frames 5000
"""
import sys
import os

# Add the 'src' directory to the Python path
current_dir: str = os.path.dirname(os.path.abspath(__file__))
src_path: str = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

from propellertof.main import main

if __name__ == "__main__":
    sys.exit(main())
