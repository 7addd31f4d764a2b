"""
Services package for follow block synchronization and lookup
"""
