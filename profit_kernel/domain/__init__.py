"""
Profit kernel domain layer -- pure types, ports, and money arithmetic.

Nothing in this package performs I/O.  Services (imperative shell) and
adapters depend on it; it depends on nothing but the standard library.
"""
