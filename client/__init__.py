"""
Client package for the multi-room chat service.

This package contains the terminal client that relays lines between the
user and the server.
"""
