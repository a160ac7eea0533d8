"""
Authentication module for the chat server.

Handles:
- Account registration
- Password verification
- Persisting hashed credentials
"""
