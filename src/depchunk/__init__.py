"""
depchunk - semantic code chunking with cross-file dependency extraction.
"""

__version__ = "0.1.0"
