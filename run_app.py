import os

from assettrack import create_app


def create_config_overrides():
    """
    Deployment overrides read at start-up; everything else comes from config.Config.
    """
    overrides = {}
    if os.environ.get("SECRET_KEY") is None:
        print("Warning: SECRET_KEY is not set, sessions use the development key.")
    if os.environ.get("ASSETTRACK_DEBUG"):
        overrides["DEBUG"] = True
    return overrides


if __name__ == "__main__":
    app = create_app(create_config_overrides())
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5000"))
    app.run(host=host, port=port, debug=app.config.get("DEBUG", False))
