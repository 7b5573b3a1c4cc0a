"""
Local Library - a library catalog built with Flask and SQLAlchemy.

Features:
- Browse books, authors, genres and individual book copies
- Create, update and delete each of them through validated forms
- Refuse deletes while other records still depend on the target
- Fetch the independent records a page needs concurrently
"""


from flask import Flask, render_template, redirect, url_for
import os
from sqlalchemy.exc import SQLAlchemyError

from catalog import catalog
from data_models import db


basedir = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DATABASE_URI = f"sqlite:///{os.path.join(basedir, 'data/library.sqlite')}"


def create_app(test_config=None):
    """
    Application factory.

    Settings come from the environment, then ``test_config`` overrides them.

    Args:
        test_config (dict): optional settings, e.g. a throwaway database URI.
    """
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("LIBRARY_SECRET_KEY", "dev-secret-key"),
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URI),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        LOG_LEVEL=os.environ.get("LIBRARY_LOG_LEVEL", "INFO"),
    )
    if test_config:
        app.config.update(test_config)

    if app.config["SQLALCHEMY_DATABASE_URI"] == DEFAULT_DATABASE_URI:
        os.makedirs(os.path.join(basedir, "data"), exist_ok=True)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    db.init_app(app)
    app.register_blueprint(catalog)

    @app.route("/")
    def home():
        return redirect(url_for("catalog.index"))

    @app.errorhandler(404)
    def not_found(error):
        """
        Missing records and unknown pages.
        """
        return render_template("error.html", title="Not Found", message=error.description,
                               status=404), 404

    @app.errorhandler(SQLAlchemyError)
    def storage_failure(error):
        """
        Any failed database call that reached a page handler.
        """
        db.session.rollback()
        app.logger.error("Storage failure: %s", error, exc_info=error)
        return render_template("error.html", title="Error",
                               message="The catalog could not be read or updated.",
                               status=500), 500

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
