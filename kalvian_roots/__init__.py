"""
Kalvian Roots - Resolve the family web of a printed genealogical register.

This package turns one nuclear family of the "Juuret Kälviällä" register into
a navigable network of linked family records by resolving the textual
cross-references printed with every parent and married child.
"""

__version__ = "0.1.0"
__author__ = "Kalvian Roots Contributors"
