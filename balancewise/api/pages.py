from __future__ import annotations

from html import escape


_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
      display: flex;
      justify-content: center;
      align-items: center;
      min-height: 100vh;
      margin: 0;
    }}
    .container {{
      background: white;
      padding: 2rem;
      border-radius: 10px;
      box-shadow: 0 10px 40px rgba(0,0,0,0.1);
      text-align: center;
      max-width: 400px;
    }}
    h1 {{ color: #333; margin-bottom: 1rem; }}
    p {{ color: #666; margin-bottom: 1.5rem; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{heading}</h1>
    <p>{message}</p>
  </div>
</body>
</html>
"""


def render_page(*, title: str, heading: str, message: str) -> str:
    return _PAGE_TEMPLATE.format(title=escape(title), heading=escape(heading), message=escape(message))


LOGIN_SUCCESS_PAGE = render_page(
    title="Authentication Successful",
    heading="Authentication Successful!",
    message="You can now close this window and return to the app.",
)

DRIVE_SUCCESS_PAGE = render_page(
    title="Drive Permission Granted",
    heading="Drive Permission Granted!",
    message="You can now upload files to Google Drive. You can close this window and return to the app.",
)
