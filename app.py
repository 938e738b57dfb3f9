"""Main entry point for the application."""

import os

from bracketeer import create_app

app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT") or 3000)
    debug = (os.environ.get("FLASK_DEBUG") or "").lower() in ["true", "1", "t"]
    app.run(debug=debug, host="0.0.0.0", port=port)  # nosec
