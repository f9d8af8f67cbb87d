"""
Command line tools for .gab dialogue scripts
"""
