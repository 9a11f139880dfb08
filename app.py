from __future__ import annotations

import logging
from functools import wraps
from typing import Dict, Optional

import click
from flask import (
    Flask,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)
from markdown import markdown
from markupsafe import Markup

import config
from bootstrap import run_bootstrap
from errors import NotFound, StorageError, ValidationError
from file_manager import FileManager, content_type
from identity import JsonIdentityStore
from models import Post, format_date
from repository import JsonRepository
from storage import JsonStorage


logger = logging.getLogger(__name__)


def render_markdown(md_text: str) -> Markup:
    return Markup(
        markdown(
            md_text or "",
            extensions=["fenced_code", "tables", "sane_lists"],
            output_format="html5",
        )
    )


def get_storage() -> JsonStorage:
    return current_app.extensions["bareblog.storage"]


def get_repo() -> JsonRepository:
    return JsonRepository(get_storage())


def get_identity() -> JsonIdentityStore:
    return JsonIdentityStore(get_storage())


def get_file_manager() -> FileManager:
    return current_app.extensions["bareblog.files"]


def is_authenticated() -> bool:
    return bool(session.get("user"))


def has_role(role: str) -> bool:
    return role in session.get("roles", [])


def role_required(role: Optional[str] = None):
    """Guard a view; ``None`` means the role configured as ``ADMIN_ROLE``."""

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not is_authenticated():
                return redirect(url_for("admin_login", next=request.path))
            if not has_role(role or current_app.config["ADMIN_ROLE"]):
                abort(403)
            return view(*args, **kwargs)

        return wrapped

    return decorator


admin_required = role_required()


def register_routes(app: Flask) -> None:
    @app.context_processor
    def inject_globals():
        return {
            "site_title": app.config["SITE_TITLE"],
            "format_date": format_date,
            "is_authenticated": is_authenticated,
        }

    app.add_template_filter(render_markdown, "markdown")

    @app.route("/")
    def blog_index():
        posts = get_repo().get_all_posts()
        return render_template("blog_index.html", posts=posts)

    @app.route("/post/<int:post_id>")
    @app.route("/post/<int:post_id>/<slug>")
    def blog_post(post_id: int, slug: Optional[str] = None):
        post = get_repo().get_post(post_id)
        if not post:
            abort(404)
        return render_template("blog_post.html", post=post)

    @app.route("/image/<image>")
    def image(image: str):
        try:
            stream = get_file_manager().image_stream(image)
        except NotFound:
            abort(404)
        return send_file(stream, mimetype=content_type(image))

    @app.route("/admin", methods=["GET", "POST"])
    def admin_login():
        if request.method == "POST":
            username = request.form.get("username", "").strip()
            password = request.form.get("password", "")
            user = get_identity().verify_password(username, password)
            if user:
                session["user"] = user["username"]
                session["roles"] = list(user.get("roles", []))
                flash("Logged in", "success")
                return redirect(request.args.get("next") or url_for("panel_index"))
            flash("Invalid credentials", "error")
        return render_template("admin_login.html")

    @app.route("/logout")
    def admin_logout():
        session.clear()
        flash("Logged out", "success")
        return redirect(url_for("blog_index"))

    @app.route("/panel")
    @admin_required
    def panel_index():
        posts = get_repo().get_all_posts()
        return render_template("panel_index.html", posts=posts)

    @app.route("/panel/post/<int:post_id>")
    @admin_required
    def panel_post(post_id: int):
        post = get_repo().get_post(post_id)
        if not post:
            abort(404)
        return render_template("blog_post.html", post=post)

    @app.route("/panel/edit", methods=["GET"])
    @app.route("/panel/edit/<int:post_id>", methods=["GET"])
    @admin_required
    def panel_edit(post_id: Optional[int] = None):
        if post_id is None:
            return render_template("panel_edit.html", post=Post())
        post = get_repo().get_post(post_id)
        if not post:
            abort(404)
        return render_template("panel_edit.html", post=post)

    @app.route("/panel/edit", methods=["POST"])
    @admin_required
    def panel_save():
        return handle_post_save()

    @app.route("/panel/remove/<int:post_id>")
    @admin_required
    def panel_remove(post_id: int):
        repo = get_repo()
        repo.remove_post(post_id)
        if repo.save_changes():
            flash("Post removed", "success")
        else:
            flash("Post could not be removed", "error")
        return redirect(url_for("panel_index"))


def handle_post_save():
    post = Post.from_form(request.form)

    upload = request.files.get("image_file")
    if upload and upload.filename:
        try:
            post.image = get_file_manager().save_image(upload)
        except ValidationError as exc:
            logger.info("Rejected upload: %s", exc)
            flash("Image name is not allowed", "error")
            return render_template("panel_edit.html", post=post), 400
        except StorageError:
            logger.exception("Image upload failed")
            flash("Image could not be saved", "error")
            return render_template("panel_edit.html", post=post), 400

    repo = get_repo()
    if post.id > 0:
        repo.update_post(post)
    else:
        repo.add_post(post)

    if repo.save_changes():
        flash("Post saved", "success")
        return redirect(url_for("panel_index"))
    flash("Post could not be saved", "error")
    return render_template("panel_edit.html", post=post), 400


def bootstrap_app(app: Flask) -> None:
    storage = app.extensions["bareblog.storage"]
    run_bootstrap(
        storage,
        JsonIdentityStore(storage),
        username=app.config["ADMIN_USER"],
        email=app.config["ADMIN_EMAIL"],
        password=app.config["ADMIN_PASSWORD"],
        role=app.config["ADMIN_ROLE"],
    )


def register_commands(app: Flask) -> None:
    @app.cli.command("bootstrap")
    def cli_bootstrap():
        """Create the data file, the Admin role and the admin account if missing."""
        bootstrap_app(app)
        storage = app.extensions["bareblog.storage"]
        click.echo(f"Bootstrap finished for {storage.path}")


def create_app(overrides: Optional[Dict] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        DATA_PATH=config.DATA_PATH,
        IMAGES_PATH=config.IMAGES_PATH,
        SITE_TITLE=config.SITE_TITLE,
        ADMIN_ROLE=config.ADMIN_ROLE,
        ADMIN_USER=config.ADMIN_USER,
        ADMIN_EMAIL=config.ADMIN_EMAIL,
        ADMIN_PASSWORD=config.ADMIN_PASSWORD,
        LOG_LEVEL=config.LOG_LEVEL,
    )
    if overrides:
        app.config.update(overrides)

    # No-op once the root logger has handlers.
    logging.basicConfig(level=app.config["LOG_LEVEL"])

    storage = JsonStorage(app.config["DATA_PATH"])
    app.extensions["bareblog.storage"] = storage
    app.extensions["bareblog.files"] = FileManager(app.config["IMAGES_PATH"])

    register_routes(app)
    register_commands(app)

    bootstrap_app(app)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
