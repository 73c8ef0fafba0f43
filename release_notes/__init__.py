"""
Issue-based Release Notes Generator.

This package turns the closed issues referenced by a tag range into
categorized Markdown release notes, crediting the people who resolved them.
"""

__version__ = "1.0.0"
