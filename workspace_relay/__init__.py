"""
Workspace Relay - Google Drive and Sheets for chat plugin hosts.

Run with: uvicorn workspace_relay.main:app --reload
"""

__version__ = "0.1.0"
