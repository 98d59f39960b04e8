"""
schedmatch – class schedule import, catalog matching and classmate discovery.
"""
