"""
sipwatch command line interface.
"""
