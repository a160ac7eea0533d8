"""
Chat module for server-side messaging functionality.

Handles:
- Session lifecycle
- Online user and room registries
- Room broadcasting
- Command interpretation
- Room history persistence
"""
