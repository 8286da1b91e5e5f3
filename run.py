"""Development server for the WP Forge admin panel.

Reads .env first so SERVERAVATAR_*, CLOUDFLARE_* and DATABASE_URL are
available to the config classes. Production runs the app through a WSGI
server pointed at `run:app`; the CLI commands live on `flask --app run`.
"""

import os

from dotenv import load_dotenv

load_dotenv()

from wpforge import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(
        debug=app.config.get("DEBUG", False),
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", 5001)),
    )
