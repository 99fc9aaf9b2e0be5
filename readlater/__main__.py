"""Main module for readlater.

This module allows the client to be run as a Python module using:
python -m readlater

It delegates to the command line interface.
"""

from readlater.cli import main

if __name__ == "__main__":
    main()
