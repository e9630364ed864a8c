"""
Contributor Quality: reputation scoring for GitHub contributors.
"""

__version__ = "0.1.0"
