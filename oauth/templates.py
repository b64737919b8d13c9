"""HTML templates for the home page and the OAuth flow.

Templates are str.format() strings, so literal braces in CSS are doubled.
Values interpolated into them must be HTML-escaped by the caller.

Theme colors:
- Background: #FAF9F7 (warm cream)
- Primary: #0052CC (Atlassian blue)
- Primary hover: #0747A6
- Success: #00875A
- Text: #172B4D, secondary #6B778C
"""

_STYLE = """
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
               background: #FAF9F7; max-width: 600px; margin: 50px auto; padding: 20px; color: #172B4D; }}
        .container {{ background: white; padding: 30px; border-radius: 10px;
                     box-shadow: 0 2px 10px rgba(0,0,0,0.1); border: 1px solid #E5E4E0; }}
        .button {{ background: #0052CC; color: white; padding: 12px 24px; text-decoration: none;
                  border-radius: 5px; display: inline-block; font-weight: 500; margin: 20px 0; }}
        .button:hover {{ background: #0747A6; }}
        .success {{ background: #00875A; color: white; padding: 20px; border-radius: 5px; margin: 20px 0; }}
        .url-container {{ background: #F4F4F4; padding: 15px; border-radius: 5px; margin: 20px 0; word-break: break-all; }}
        .copy-btn {{ background: #0052CC; color: white; border: none; padding: 8px 16px;
                    border-radius: 3px; cursor: pointer; font-size: 14px; }}
        .copy-btn:hover {{ background: #0747A6; }}
        code {{ background: #F4F4F4; padding: 2px 6px; border-radius: 3px; font-family: 'Courier New', monospace; }}
        .muted {{ color: #6B778C; font-size: 14px; }}
        h2 {{ color: #42526E; }}
    </style>
"""

HOME_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Multi-Space Jira MCP</title>
""" + _STYLE + """
</head>
<body>
    <div class="container">
        <h1>Multi-Space Jira MCP Server</h1>
        <p>Connect your agent to multiple Jira spaces with a single authentication.</p>
        <a href="/auth/start" class="button">Connect to Jira</a>
        <h2>Setup Instructions</h2>
        <ol>
            <li>Click "Connect to Jira" above</li>
            <li>Log in with your Atlassian account</li>
            <li>Copy the generated URL</li>
            <li>Add it to your MCP client's integrations</li>
        </ol>
        <h2>Available Tools</h2>
        <ul>
{tool_items}
        </ul>
    </div>
</body>
</html>
"""

TOOL_ITEM = """            <li><code>{name}</code> - {description}</li>"""

NOT_CONFIGURED_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>OAuth Not Configured</title>
""" + _STYLE + """
</head>
<body>
    <div class="container">
        <h2>OAuth Not Configured</h2>
        <p>To use this server, you need to set up Atlassian OAuth:</p>
        <ol>
            <li>Go to the <a href="https://developer.atlassian.com/console/myapps/" target="_blank">Atlassian Developer Console</a></li>
            <li>Create a new app</li>
            <li>Add an OAuth 2.0 (3LO) integration</li>
            <li>Set the callback URL to: <code>{callback_url}</code></li>
            <li>Set these environment variables:
                <ul>
                    <li><code>ATLASSIAN_CLIENT_ID</code></li>
                    <li><code>ATLASSIAN_CLIENT_SECRET</code></li>
                </ul>
            </li>
            <li>Restart the server and try again</li>
        </ol>
    </div>
</body>
</html>
"""

CONNECTED_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Connected</title>
""" + _STYLE + """
</head>
<body>
    <div class="success">
        <h2>Successfully Connected!</h2>
        <p>Found {project_count} accessible Jira projects</p>
    </div>
    <h3>Your MCP Connection URL:</h3>
    <div class="url-container">
        <code id="url">{connection_url}</code>
        <button class="copy-btn" onclick="copyUrl()">Copy URL</button>
    </div>
    <h3>Next Steps:</h3>
    <ol>
        <li>Copy the URL above</li>
        <li>Open your MCP client's integration settings</li>
        <li>Add a new MCP integration</li>
        <li>Paste the URL and save</li>
    </ol>
    <p class="muted">Accessible spaces: {space_list}</p>
    <script>
        function copyUrl() {{
            const url = document.getElementById('url').textContent;
            navigator.clipboard.writeText(url).then(() => {{ alert('URL copied!'); }});
        }}
    </script>
</body>
</html>
"""
