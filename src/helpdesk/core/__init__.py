# src/helpdesk/core/__init__.py
"""Core configuration, security and error primitives."""
