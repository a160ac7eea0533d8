"""
Chat module for the terminal client.
"""
