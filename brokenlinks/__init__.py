"""
Broken Link Checker

Recursively checks every link reachable within a web site and reports the
outcome of each one together with the page that referenced it.
"""

__version__ = "1.0.0"
__description__ = "Recursive broken link checker for web sites"
