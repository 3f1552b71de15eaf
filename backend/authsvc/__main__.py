"""Run the development server with ``python -m authsvc``."""

from __future__ import annotations

from authsvc import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(app.config.get("PORT", 8080)))
