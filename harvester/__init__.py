"""
Resumable Muck Rack directory harvester.
"""

__version__ = "0.1.0"
