"""
Hide files inside PNG images as private ancillary chunks.
"""
__version__ = "0.1.0"
