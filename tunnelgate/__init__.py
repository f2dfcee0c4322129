"""
tunnelgate: per-user admission control plugin for reverse-proxy servers
"""

__version__ = "1.0.0"
