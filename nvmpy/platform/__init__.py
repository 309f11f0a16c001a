"""
nvmpy Platform Detection & Installation
Platform resolution, release catalog and Node.js installation management
"""

from nvmpy.platform.detector import (
    PlatformDetector,
    PlatformInfo,
    OSType,
    Architecture,
    get_platform_info,
    detect_platform,
)

__all__ = [
    'PlatformDetector',
    'PlatformInfo',
    'OSType',
    'Architecture',
    'get_platform_info',
    'detect_platform',
]
