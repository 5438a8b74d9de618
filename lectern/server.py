import logging

from flask import Flask
from flask_cors import CORS

from lectern.core import config
from lectern.routes.references_api import references_bp


def create_app(service=None) -> Flask:
    """
    Build the Flask app.

    Args:
        service: Optional ReferenceService to use instead of the default
            (cache under LECTERN_DATA_DIR)
    """
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["REFERENCE_SERVICE"] = service

    CORS(app)

    app.register_blueprint(references_bp)
    return app


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATEFMT,
    )
    app = create_app()
    app.run(host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
