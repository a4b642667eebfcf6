# arena/__init__.py
from __future__ import annotations
import logging
from typing import Any, Callable, Mapping, Optional

import click
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from .config import Config
from .db import db

# --- extensions ---
migrate = Migrate()
# storage comes from RATELIMIT_STORAGE_URI (memory:// in dev, redis:// in prod)
limiter = Limiter(get_remote_address)


def create_app(
    test_config: Optional[Mapping[str, Any]] = None,
    *,
    kv_store=None,
    clock: Optional[Callable[[], float]] = None,
    rng=None,
) -> Flask:
    app = Flask(__name__, instance_relative_config=True)

    # ---------------------------
    # Config
    # ---------------------------
    app.config.from_object(Config)
    app.config.from_pyfile("config.py", silent=True)  # instance/config.py (optional)
    if test_config:
        app.config.update(test_config)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError(
            "Missing SQLALCHEMY_DATABASE_URI (or DATABASE_URL). "
            "Set it via env or instance/config.py."
        )

    # ---------------------------
    # Logging
    # ---------------------------
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    for name in ("arena", "arena.games.core", "arena.games.game24"):
        logging.getLogger(name).setLevel(level)

    # ---------------------------
    # Extensions init
    # ---------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    from .games.core.store_registry import init_kv
    from .games.game24.services import CLOCK_KEY, RNG_KEY
    store = init_kv(app, kv_store)
    if clock is not None:
        app.extensions[CLOCK_KEY] = clock
    if rng is not None:
        app.extensions[RNG_KEY] = rng
    app.logger.info("KV store: %s", type(store).__name__)

    from . import models  # noqa: F401  (register tables with the metadata)

    # ---------------------------
    # Blueprints
    # ---------------------------
    from .games.game24.game24_routes import bp as game24_bp
    app.register_blueprint(game24_bp)

    # ---------------------------
    # CLI commands
    # ---------------------------
    @app.cli.command("game24-init-db")
    def game24_init_db():
        """Create the round-history table(s)."""
        db.create_all()
        click.echo("Created game24 tables.")

    @app.cli.command("game24-solve")
    @click.argument("cards", nargs=4, type=click.IntRange(1, 13))
    def game24_solve(cards):
        """Print up to 5 ways to make 24 from four cards."""
        from .games.core.solver import solve_24
        sols = solve_24(list(cards))
        if not sols:
            click.echo(f"{' '.join(map(str, cards))}: no solution")
            return
        for s in sols:
            click.echo(s)

    @app.cli.command("game24-sweep")
    def game24_sweep():
        """Evict timed-out players and destroy empty rooms once."""
        from .games.game24.services import liveness
        res = liveness().sweep()
        click.echo(f"cleaned players={res['cleanedPlayers']} rooms={res['cleanedRooms']}")

    return app
