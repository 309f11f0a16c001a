#!/usr/bin/env python3
"""
nvmpy module entry point
Allows running: python3 -m nvmpy
"""

from nvmpy.cli import main

if __name__ == '__main__':
    main()
