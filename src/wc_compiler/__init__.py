"""
wc-compiler: compiles declarative event files into a published calendar.
"""

__version__ = "0.1.0"
