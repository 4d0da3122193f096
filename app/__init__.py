"""
Asset Tag Engine

Configurable asset identifier generation and printable code rendering
for the asset-management service.
"""

__version__ = "1.0.0"
