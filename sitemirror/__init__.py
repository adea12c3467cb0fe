"""
Site Mirror

A concurrent website mirroring crawler that saves pages and their resources
to a browsable local tree.
"""

__version__ = "1.0.0"
__author__ = "Alex Nguyen"
__description__ = "Recursive website mirroring crawler with local link rewriting"
