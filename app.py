"""
=============================================================================
ROBO FACE EMOTION ENGINE - APPLICATION ENTRY POINT (app.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This is the "front door" of the server. When you run "python app.py", a web
server starts that:

  1. Accepts landmark sets from a client (e.g. a browser running the face
     mesh itself) and answers with face metrics and an emotion label.
  2. Starts and stops live detection from a webcam, file or stream, and
     reports the latest emotion for the robot face to display.

The URL handlers live in routes.py.

HOW TO RUN:
-----------
  - From project root:  python app.py
  - By default the app is at:  http://localhost:5000

CONFIGURATION:
--------------
  - Settings come from the .env file and config.py.
=============================================================================
"""

# ---------------------------------------------------------------------------
# Step 1: Load environment variables from .env (before anything else)
# ---------------------------------------------------------------------------
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

# ---------------------------------------------------------------------------
# Step 2: Import the web framework and our own modules
# ---------------------------------------------------------------------------
import logging

from flask import Flask
from flask_cors import CORS
from flask_compress import Compress

from routes import register_routes
import config

# ---------------------------------------------------------------------------
# Step 3: Warn the user about settings that cannot work
# ---------------------------------------------------------------------------
config.warn_invalid_config()


def create_app() -> Flask:
    """
    Create and configure the Flask application (the web server).

    What it does:
      - Creates a new Flask "app" object.
      - Enables CORS so a browser client on another origin can call the API.
      - Enables compression for the larger JSON responses.
      - Registers all URL routes from routes.py.

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    # Allow the browser to call our API from another origin.
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Compress responses (gzip) when the client supports it.
    Compress(app)

    register_routes(app)

    return app


# ---------------------------------------------------------------------------
# Create the one global Flask application
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Run the server when this file is executed directly (e.g. "python app.py")
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    # FLASK_DEBUG: Flask's development server with reloader. Otherwise
    # waitress, a production-style server with several worker threads.
    logging.basicConfig(
        level=logging.DEBUG if config.FLASK_DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.FLASK_DEBUG:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=True
        )
    else:
        import waitress
        waitress.serve(app, host=config.FLASK_HOST, port=config.FLASK_PORT, threads=6)
