"""
ffspot: downloads tracks and encodes them through FFmpeg using templated
output paths and encoding profiles.
"""

__version__ = "0.3.0"
