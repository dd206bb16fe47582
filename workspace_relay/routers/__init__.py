"""
Routers module - API endpoint handlers organized by feature.

Each router handles a specific domain of the API:
- google_auth: Google OAuth login, callback and disconnect
- drive: Google Drive file listing
- sheets: Google Sheets read / append / update
"""
