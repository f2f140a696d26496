"""
Core agreement algorithms (pure, no I/O, no logging)
"""
