"""
nvmpy - Node.js Version Installer
Installs, lists and removes project-local Node.js runtimes.
"""

__version__ = "0.4.0"
__author__ = "nvmpy contributors"
__license__ = "MIT"

__all__ = ["__version__"]
