"""
Marketing preferences page and update endpoint.

Routes:
- GET  /marketing-preferences?id=<customer id>  - page with the current status
- POST /api/update                               - JSON {id, acceptsMarketing}

Anything under public/ (fonts, images) is served from the site root.
"""

import logging
from pathlib import Path

from flask import Flask, jsonify, request

from config import Settings
from customer_api import CustomerApiError, CustomerClient, UpstreamRejected
from preferences import read_status, write_status

logger = logging.getLogger(__name__)

PUBLIC_DIR = Path(__file__).parent.parent / "public"

UPDATE_FAILED_MESSAGE = "Error updating preference ❌"
SERVER_ERROR_MESSAGE = "Server error ❌"


# ============================================================
# Page rendering
# ============================================================

PAGE_STYLE = """
    @font-face {
      font-display: swap;
      font-family: "Bentley";
      font-style: normal;
      font-weight: 300;
      src: url("/bentley-light-webfont.woff2") format("woff2"),
           url("/bentley-light-webfont.woff") format("woff");
    }
    body {
      font-family: "Bentley", "Helvetica Neue", Helvetica, Arial, sans-serif;
      max-width: 420px;
      margin: 2rem auto;
      text-align: center;
    }
    .toggle-container {
      display: flex;
      align-items: center;
      justify-content: center;
      gap: 10px;
      margin: 1.5rem 0;
    }
    .switch { position: relative; display: inline-block; width: 50px; height: 28px; }
    .switch input { opacity: 0; width: 0; height: 0; }
    .slider {
      position: absolute;
      cursor: pointer;
      top: 0; left: 0; right: 0; bottom: 0;
      background-color: #ccc;
      transition: .3s;
      border-radius: 34px;
    }
    .slider:before {
      position: absolute;
      content: "";
      height: 20px;
      width: 20px;
      left: 4px;
      bottom: 4px;
      background-color: white;
      transition: .3s;
      border-radius: 50%;
    }
    input:checked + .slider { background-color: #486b5d; }
    input:checked + .slider:before { transform: translateX(22px); }
    .button {
      font-size: .875rem;
      text-transform: uppercase;
      padding: 1rem;
      min-width: 220px;
      cursor: pointer;
      background-color: transparent;
      border: 1px solid #000;
      color: #000;
    }
    #msg { margin-top: 1rem; font-weight: 500; }
"""

PAGE_SCRIPT = """
    const checkbox = document.getElementById('marketing');
    const label = document.getElementById('status-label');
    const statusText = document.getElementById('current-status');

    checkbox.addEventListener('change', () => {
      const checked = checkbox.checked;
      label.textContent = checked ? "Subscribed" : "Unsubscribed";
      statusText.textContent = checked
        ? "You are currently subscribed to marketing emails."
        : "You are currently not subscribed to marketing emails.";
    });

    document.getElementById('form').addEventListener('submit', async (e) => {
      e.preventDefault();
      const acceptsMarketing = checkbox.checked;
      const id = new URLSearchParams(window.location.search).get('id');

      const res = await fetch('/api/update', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ id, acceptsMarketing })
      });
      const data = await res.json();
      document.getElementById('msg').textContent = data.message;
    });
"""


def render_page(subscribed: bool, message: str) -> str:
    """Preferences page with the toggle preset to the current state."""
    checked = "checked" if subscribed else ""
    label = "Subscribed" if subscribed else "Unsubscribed"

    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Marketing Preferences</title>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <p id="current-status">{message}</p>

    <form id="form">
        <div class="toggle-container">
            <label class="switch">
                <input type="checkbox" id="marketing" {checked}/>
                <span class="slider"></span>
            </label>
            <span id="status-label">{label}</span>
        </div>
        <button type="submit" class="button">Save Preferences</button>
    </form>

    <p id="msg"></p>

    <script>{PAGE_SCRIPT}</script>
</body>
</html>
"""


# ============================================================
# Flask App
# ============================================================

def create_flask_app(settings: Settings, client=None) -> Flask:
    """
    Create the Flask app.

    client defaults to a CustomerClient for settings; tests pass a fake
    with the same fetch_customer/update_customer methods.
    """
    if client is None:
        client = CustomerClient(settings)

    app = Flask(__name__, static_folder=str(PUBLIC_DIR), static_url_path="")

    @app.get("/marketing-preferences")
    def preferences_page():
        customer_id = request.args.get("id", "").strip()
        subscribed, message = read_status(client, customer_id or None)
        return render_page(subscribed, message), 200, {"Content-Type": "text/html; charset=utf-8"}

    @app.post("/api/update")
    def update_preference():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify(message=UPDATE_FAILED_MESSAGE), 400

        customer_id = body.get("id")
        accepts_marketing = body.get("acceptsMarketing")

        if customer_id is None or str(customer_id).strip() == "":
            logger.warning("Update request without a customer id")
            return jsonify(message=UPDATE_FAILED_MESSAGE), 400
        if not isinstance(accepts_marketing, bool):
            logger.warning("Update request for customer %s without a boolean acceptsMarketing", customer_id)
            return jsonify(message=UPDATE_FAILED_MESSAGE), 400

        try:
            message = write_status(client, customer_id, accepts_marketing)
        except UpstreamRejected:
            return jsonify(message=UPDATE_FAILED_MESSAGE), 400
        except CustomerApiError:
            return jsonify(message=SERVER_ERROR_MESSAGE), 500
        except Exception:
            logger.exception("Update failed for customer %s", customer_id)
            return jsonify(message=SERVER_ERROR_MESSAGE), 500

        return jsonify(message=message)

    return app
