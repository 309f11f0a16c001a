"""
nvmpy Installers
Runtime installers that manage versions under an install root
"""

from nvmpy.platform.installers.base import BaseInstaller
from nvmpy.platform.installers.node import NodeInstaller

__all__ = [
    'BaseInstaller',
    'NodeInstaller',
]
