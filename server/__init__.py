"""
Server package for the multi-room chat service.

This package contains all server-side functionality including:
- Connection handling and per-client sessions
- Authentication against the credential store
- Room membership, broadcast and private messages
- Persistent room history
- Configuration and utilities
"""
