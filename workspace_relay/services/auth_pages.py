"""
Auth Page Renderer - HTML shown at the end of the OAuth callback.

Three pages:
- render_token_page(): shows the session id the user pastes into the plugin host
- render_close_window_page(): tells the opener we are done and closes the popup
- render_error(): terminal failure, the user has to start over

Everything user-controlled is escaped; the session id is also embedded in
a <script> block via json.dumps.
"""

import html as html_escape
import json
from typing import Optional


class AuthPageRenderer:
    """
    Renders the callback pages.

    Attributes:
        app_name: Shown in titles and headings
        auth_url: Where "try again" links point
    """

    def __init__(self, app_name: str, auth_url: str):
        self.app_name = app_name
        self.auth_url = auth_url

    def _get_css(self) -> str:
        return """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f5f5f5;
            color: #1a1a1a;
            line-height: 1.5;
        }
        .container { max-width: 640px; margin: 4rem auto; padding: 2rem;
                     background: #ffffff; border: 1px solid #e0e0e0; border-radius: 12px; }
        h1 { font-size: 1.4rem; margin-bottom: 1rem; }
        p { margin-bottom: 1rem; }
        .token { font-family: ui-monospace, Menlo, monospace; word-break: break-all;
                 background: #e3f2fd; padding: 1rem; border-radius: 8px; margin-bottom: 1rem; }
        button { padding: 0.5rem 1rem; border: 0; border-radius: 6px;
                 background: #1976d2; color: #fff; cursor: pointer; }
        .error-message { color: #c62828; }
        .hint { color: #666666; font-size: 0.9rem; }
        """

    def _page(self, title: str, body: str, script: str = "") -> str:
        safe_title = html_escape.escape(title)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{safe_title}</title>
    <style>{self._get_css()}</style>
</head>
<body>
    <div class="container">
{body}
    </div>
    {script}
</body>
</html>
"""

    def render_token_page(self, token: str, label: str = "session token") -> str:
        """
        Page displaying a token for the user to copy.

        Args:
            token: Session id (or Google access token in passthrough mode)
            label: What to call it in the instructions
        """
        safe_token = html_escape.escape(token)
        safe_label = html_escape.escape(label)
        # "</" would end the script block early
        script_token = json.dumps(token).replace("</", "<\\/")
        body = f"""
        <h1>{html_escape.escape(self.app_name)}: Google connected</h1>
        <p>Copy this {safe_label} into your plugin settings. It is sent as
        <code>Authorization: Bearer &lt;token&gt;</code>.</p>
        <div class="token" id="token">{safe_token}</div>
        <button type="button" onclick="copyToken()">Copy</button>
        <p class="hint">The token stops working when the relay restarts.</p>
"""
        script = f"""<script>
    function copyToken() {{
        navigator.clipboard.writeText({script_token});
    }}
    </script>"""
        return self._page(f"{self.app_name} - Connected", body, script)

    def render_close_window_page(self) -> str:
        """Page that notifies the opener and closes the popup."""
        body = f"""
        <h1>{html_escape.escape(self.app_name)}: Google connected</h1>
        <p>You can close this window.</p>
"""
        script = """<script>
    if (window.opener) {
        window.opener.postMessage({ type: "relay-auth-complete" }, "*");
    }
    window.close();
    </script>"""
        return self._page(f"{self.app_name} - Connected", body, script)

    def render_error(self, error_message: str, details: Optional[str] = None) -> str:
        """Terminal failure page with a link back to /auth/google."""
        details_html = ""
        if details:
            details_html = f'<p class="hint">{html_escape.escape(details)}</p>'
        body = f"""
        <h1>Google sign-in failed</h1>
        <p class="error-message">{html_escape.escape(error_message)}</p>
        {details_html}
        <p><a href="{html_escape.escape(self.auth_url, quote=True)}">Start again</a></p>
"""
        return self._page(f"{self.app_name} - Sign-in failed", body)
